"""Legacy product price table (product + size label)."""
from sqlalchemy import Column, String, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from posorder.database import Base, BigIntPK


class ProductPrice(Base):
    """
    Legacy price row keyed by product and size label.

    Only consulted when the current variant table has no price for the
    same (product, size) pair.
    """

    __tablename__ = 'product_prices'
    __table_args__ = (UniqueConstraint('product_id', 'price_key', name='uq_product_prices_key'),)

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    price_key = Column(String(16), nullable=False)
    price_vat_incl = Column(Numeric(14, 2), nullable=False)

    product = relationship('Product', back_populates='legacy_prices')

    def __repr__(self):
        return f"<ProductPrice(product_id={self.product_id}, key='{self.price_key}', price={self.price_vat_incl})>"
