"""Promotion model and its scope/rule records."""
import enum
import uuid
from sqlalchemy import Column, String, Integer, Boolean, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from posorder.database import Base


class PromotionType(enum.Enum):
    """Promotion kind."""
    DISCOUNT = "DISCOUNT"  # flat percent_off on eligible lines
    RULE = "RULE"          # conditions + actions in promotion_rules


class Promotion(Base):
    """
    Promotion (campaign) identified by its public code.

    A promotion is only applied while active and inside its validity window;
    the pricing engine decides this per request.
    """

    __tablename__ = 'promotions'

    code = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=True)
    promo_type = Column(String(16), nullable=False, default=PromotionType.RULE.value)
    percent_off = Column(Numeric(5, 2), nullable=True)
    min_qty = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    scope_targets = relationship('PromotionScopeTarget', back_populates='promotion', cascade='all, delete-orphan')
    rules = relationship('PromotionRule', back_populates='promotion', cascade='all, delete-orphan',
                         order_by='PromotionRule.rule_order')

    def __repr__(self):
        return f"<Promotion(code='{self.code}', type='{self.promo_type}', active={self.is_active})>"


class PromotionScopeTarget(Base):
    """Include/exclude row targeting a category, subcategory, product or variant."""

    __tablename__ = 'promotion_scope_targets'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    promotion_code = Column(String(64), ForeignKey('promotions.code'), nullable=False, index=True)
    target_type = Column(String(16), nullable=False)  # CATEGORY, SUBCATEGORY, PRODUCT, VARIANT
    target_id = Column(String(64), nullable=False)
    is_included = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    promotion = relationship('Promotion', back_populates='scope_targets')

    def __repr__(self):
        sign = '+' if self.is_included else '-'
        return f"<PromotionScopeTarget({sign}{self.target_type}:{self.target_id})>"


class PromotionRule(Base):
    """
    Ordered rule of a RULE promotion.

    conditions: {"min_order_value": int, "min_qty": int, "min_eligible_qty": int}
    actions: list of {"type": ..., ...} objects (see posorder.pricing.records)
    """

    __tablename__ = 'promotion_rules'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    promotion_code = Column(String(64), ForeignKey('promotions.code'), nullable=False, index=True)
    rule_order = Column(Integer, nullable=False, default=0)
    conditions = Column(JSON, nullable=True)
    actions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    promotion = relationship('Promotion', back_populates='rules')

    def __repr__(self):
        return f"<PromotionRule(id={self.id}, promotion='{self.promotion_code}', order={self.rule_order})>"
