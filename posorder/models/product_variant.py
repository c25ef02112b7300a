"""Product variant (size/SKU) and its current price."""
import uuid
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from posorder.database import Base


class ProductVariant(Base):
    """Sellable size of a product, identified by its SKU."""

    __tablename__ = 'product_variants'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    size_key = Column(String(16), nullable=False)  # STD, SIZE_PHE, SIZE_LA
    sku_code = Column(String(64), nullable=True, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product', back_populates='variants')
    price = relationship('ProductVariantPrice', uselist=False, back_populates='variant', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, product_id={self.product_id}, size='{self.size_key}')>"


class ProductVariantPrice(Base):
    """Current price table, one row per variant (VAT included)."""

    __tablename__ = 'product_variant_prices'

    variant_id = Column(String(36), ForeignKey('product_variants.id'), primary_key=True)
    price_vat_incl = Column(Numeric(14, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    variant = relationship('ProductVariant', back_populates='price')

    def __repr__(self):
        return f"<ProductVariantPrice(variant_id={self.variant_id}, price={self.price_vat_incl})>"
