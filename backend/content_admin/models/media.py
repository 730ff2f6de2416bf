"""Diagrams (image asset) and templates (PDF asset)"""
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from content_admin.database import Base
from content_admin.models.base import OrderedMixin


class Diagram(OrderedMixin, Base):
    __tablename__ = "diagrams"
    __table_args__ = (
        UniqueConstraint("order", name="uq_diagrams_order"),
    )

    title = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    description_ar = Column(Text, nullable=False, default="")
    category = Column(String(255), nullable=False, default="")

    image_url = Column(String(1024), nullable=False, default="")
    image_file_name = Column(String(255), nullable=False, default="")  # storage key under diagrams/
    image_original_name = Column(String(255), nullable=False, default="")
    image_size = Column(Integer, nullable=False, default=0)


class Template(OrderedMixin, Base):
    __tablename__ = "templates"
    __table_args__ = (
        UniqueConstraint("order", name="uq_templates_order"),
    )

    title = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    description_ar = Column(Text, nullable=False, default="")
    category = Column(String(255), nullable=False, default="")

    pdf_url = Column(String(1024), nullable=False, default="")
    pdf_file_name = Column(String(255), nullable=False, default="")  # storage key under templates/
    pdf_original_name = Column(String(255), nullable=False, default="")
    pdf_size = Column(Integer, nullable=False, default=0)


# Pydantic models for API

class MediaBase(BaseModel):
    """Bilingual fields shared by diagrams and templates"""
    title: str = Field(..., min_length=1, max_length=255)
    title_ar: str = Field(default="", max_length=255)
    description: str = ""
    description_ar: str = ""
    category: str = Field(default="", max_length=255)


class MediaUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)


class DiagramResponse(MediaBase):
    id: int
    order: int
    image_url: str = ""
    image_file_name: str = ""
    image_original_name: str = ""
    image_size: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateResponse(MediaBase):
    id: int
    order: int
    pdf_url: str = ""
    pdf_file_name: str = ""
    pdf_original_name: str = ""
    pdf_size: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DiagramList(BaseModel):
    diagrams: List[DiagramResponse]
    total: int


class TemplateList(BaseModel):
    templates: List[TemplateResponse]
    total: int
