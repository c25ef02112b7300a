"""Order model."""
import enum
import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from posorder.database import Base


class OrderStatus(enum.Enum):
    """Order status enum."""
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    SHIPPING = "SHIPPING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Forward-only lifecycle; CANCELLED is reachable from any open state
VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPING, OrderStatus.CANCELLED},
    OrderStatus.SHIPPING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


class Order(Base):
    """
    Order persisted with server-computed pricing.

    Amounts are integers in minor currency units (VND).
    """

    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_code = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(16), nullable=False, default=OrderStatus.PLACED.value)
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(32), nullable=True)
    promotion_code = Column(String(64), nullable=True)
    subtotal = Column(BigInteger, nullable=False, default=0)
    discount_total = Column(BigInteger, nullable=False, default=0)
    shipping_fee = Column(BigInteger, nullable=False, default=0)
    shipping_discount = Column(BigInteger, nullable=False, default=0)
    shipping_is_free = Column(Boolean, nullable=False, default=False)
    total = Column(BigInteger, nullable=False, default=0)
    platform = Column(String(64), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    lines = relationship('OrderLine', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderLine.position')

    def __repr__(self):
        return f"<Order(code='{self.order_code}', status='{self.status}', total={self.total})>"

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        """Check the lifecycle table for a status change."""
        return new_status in VALID_TRANSITIONS[OrderStatus(self.status)]
