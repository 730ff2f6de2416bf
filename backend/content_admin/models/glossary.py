from sqlalchemy import Column, String, Text, UniqueConstraint
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from content_admin.database import Base
from content_admin.models.base import OrderedMixin


class GlossaryTerm(OrderedMixin, Base):
    """Bilingual glossary entry, referenced from content as {term}"""
    __tablename__ = "glossary_terms"
    __table_args__ = (
        UniqueConstraint("order", name="uq_glossary_terms_order"),
    )

    term = Column(String(255), nullable=False, index=True)
    term_ar = Column(String(255), nullable=False, default="")
    definition = Column(Text, nullable=False)
    definition_ar = Column(Text, nullable=False, default="")
    category = Column(String(255), nullable=False, default="")


class GlossaryTermBase(BaseModel):
    term: str = Field(..., min_length=1, max_length=255)
    term_ar: str = Field(default="", max_length=255)
    definition: str = Field(..., min_length=1)
    definition_ar: str = ""
    category: str = Field(default="", max_length=255)


class GlossaryTermCreate(GlossaryTermBase):
    pass


class GlossaryTermUpdate(BaseModel):
    term: Optional[str] = Field(None, min_length=1, max_length=255)
    term_ar: Optional[str] = Field(None, max_length=255)
    definition: Optional[str] = Field(None, min_length=1)
    definition_ar: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)


class GlossaryTermResponse(GlossaryTermBase):
    id: int
    order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GlossaryList(BaseModel):
    terms: List[GlossaryTermResponse]
    total: int


class LinkResolutionRequest(BaseModel):
    """Content whose {term} references should be resolved"""
    text: str


class LinkResolution(BaseModel):
    linked: List[GlossaryTermResponse]
    unresolved: List[str]
