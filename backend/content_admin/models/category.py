from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from content_admin.database import Base
from content_admin.models.base import OrderedMixin

DEFAULT_COLOR = "#37B24D"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class Category(OrderedMixin, Base):
    """Top level of the taxonomy, ordered globally"""
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("order", name="uq_categories_order"),
    )

    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=False, default="")
    color_hex = Column(String(7), nullable=False, default=DEFAULT_COLOR)


class Subcategory(OrderedMixin, Base):
    """Subcategory ordered within its category.

    A row with parent_subcategory_id set is a sub-subcategory; it still shares
    the sibling scope of its category.
    """
    __tablename__ = "subcategories"
    __table_args__ = (
        UniqueConstraint("category_id", "order", name="uq_subcategories_category_id_order"),
    )

    # No FK cascade: removing children is the cascade deleter's job, in one batch
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    parent_subcategory_id = Column(Integer, ForeignKey("subcategories.id"), nullable=True, index=True)
    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=False, default="")
    content_en = Column(Text, nullable=False, default="")
    content_ar = Column(Text, nullable=False, default="")
    color_hex = Column(String(7), nullable=False, default=DEFAULT_COLOR)


# Pydantic models for API

class CategoryBase(BaseModel):
    """Base category schema"""
    title_en: str = Field(..., min_length=1, max_length=255)
    title_ar: str = Field(default="", max_length=255)
    color_hex: str = Field(default=DEFAULT_COLOR, pattern=COLOR_PATTERN)


class CategoryCreate(CategoryBase):
    """Schema for creating a category (order is always assigned by the server)"""
    pass


class CategoryUpdate(BaseModel):
    """Schema for updating a category"""
    title_en: Optional[str] = Field(None, min_length=1, max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    color_hex: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class CategoryResponse(CategoryBase):
    """Schema for category response"""
    id: int
    order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SubcategoryBase(BaseModel):
    """Base subcategory schema"""
    title_en: str = Field(..., min_length=1, max_length=255)
    title_ar: str = Field(..., min_length=1, max_length=255)
    content_en: str = Field(..., min_length=1)
    content_ar: str = Field(..., min_length=1)
    color_hex: str = Field(default=DEFAULT_COLOR, pattern=COLOR_PATTERN)


class SubcategoryCreate(SubcategoryBase):
    """Schema for creating a subcategory under a category"""
    parent_subcategory_id: Optional[int] = Field(
        default=None, description="Set to nest this entry under another subcategory of the same category"
    )


class SubcategoryUpdate(BaseModel):
    """Schema for updating a subcategory; category_id is immutable"""
    title_en: Optional[str] = Field(None, min_length=1, max_length=255)
    title_ar: Optional[str] = Field(None, min_length=1, max_length=255)
    content_en: Optional[str] = Field(None, min_length=1)
    content_ar: Optional[str] = Field(None, min_length=1)
    color_hex: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class SubcategoryResponse(SubcategoryBase):
    """Schema for subcategory response"""
    id: int
    category_id: int
    parent_subcategory_id: Optional[int] = None
    order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryList(BaseModel):
    """Schema for list of categories"""
    categories: List[CategoryResponse]
    total: int


class SubcategoryList(BaseModel):
    """Schema for list of subcategories of one category"""
    category_id: int
    subcategories: List[SubcategoryResponse]
    total: int
