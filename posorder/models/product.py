"""Product model."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from posorder.database import Base


class Product(Base):
    """Product model."""

    __tablename__ = 'products'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(64), nullable=True, unique=True)
    name = Column(String(200), nullable=False)
    # Legacy free-text category; category_code replaces it once backfilled
    category = Column(String(64), nullable=True)
    category_code = Column(String(32), nullable=True)
    subcategory_id = Column(String(36), ForeignKey('subcategories.id'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    subcategory = relationship('Subcategory')
    variants = relationship('ProductVariant', back_populates='product', cascade='all, delete-orphan')
    legacy_prices = relationship('ProductPrice', back_populates='product', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', code='{self.code}')>"

    @property
    def effective_category(self):
        """Category used for promotion matching (category_code wins over legacy)."""
        return self.category_code or self.category
