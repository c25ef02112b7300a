"""Subcategory (menu section) model."""
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from posorder.database import Base


class Subcategory(Base):
    """Second level of the menu hierarchy, under a category code."""

    __tablename__ = 'subcategories'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category_code = Column(String(32), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Subcategory(id={self.id}, category='{self.category_code}', name='{self.name}')>"
