"""Models package - exports all SQLAlchemy models."""
# Catalog
from posorder.models.subcategory import Subcategory
from posorder.models.product import Product
from posorder.models.product_variant import ProductVariant, ProductVariantPrice
from posorder.models.product_price import ProductPrice

# Promotions
from posorder.models.promotion import Promotion, PromotionType, PromotionScopeTarget, PromotionRule

# Orders
from posorder.models.order import Order, OrderStatus, VALID_TRANSITIONS
from posorder.models.order_line import OrderLine

__all__ = [
    # Catalog
    'Subcategory', 'Product', 'ProductVariant', 'ProductVariantPrice', 'ProductPrice',
    # Promotions
    'Promotion', 'PromotionType', 'PromotionScopeTarget', 'PromotionRule',
    # Orders
    'Order', 'OrderStatus', 'VALID_TRANSITIONS', 'OrderLine',
]
