"""OrderLine model."""
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from posorder.database import Base, BigIntPK


class OrderLine(Base):
    """
    Order line snapshot.

    price_key_snapshot holds what the customer saw; charged_price_key what was
    billed. They only differ under the legacy free upsize promotion.
    """

    __tablename__ = 'order_lines'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey('orders.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    line_id = Column(String(64), nullable=False)
    product_id = Column(String(36), nullable=False)
    product_name_snapshot = Column(String(200), nullable=False, default='')
    price_key_snapshot = Column(String(16), nullable=False)
    charged_price_key = Column(String(16), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price_snapshot = Column(BigInteger, nullable=False)
    line_total = Column(BigInteger, nullable=False)
    is_free_item = Column(Boolean, nullable=False, default=False)
    options_snapshot = Column(JSON, nullable=True)
    note = Column(Text, nullable=True)

    order = relationship('Order', back_populates='lines')

    def __repr__(self):
        return f"<OrderLine(order_id={self.order_id}, line_id='{self.line_id}', qty={self.qty}, total={self.line_total})>"
