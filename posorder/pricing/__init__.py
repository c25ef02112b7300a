"""
Order pricing and promotion engine.

Everything in this package is pure: callers load catalog and promotion data
first (see posorder.services.pricing_data_service) and pass it in.
"""
from posorder.pricing.categories import Category, normalize_category
from posorder.pricing.config import PricingConfig
from posorder.pricing.engine import quote_order
from posorder.pricing.prices import PriceBook
from posorder.pricing.scopes import LineIdentity, ScopeResolver
from posorder.pricing.types import (
    AdjustmentKind, LineItem, LineResult, PricingInputs, ProductInfo, PromotionInfo,
    PromotionKind, QuoteResult, SIZE_KEYS, SizeKey, VariantInfo,
)

__all__ = [
    'Category', 'normalize_category', 'PricingConfig', 'quote_order', 'PriceBook',
    'LineIdentity', 'ScopeResolver', 'AdjustmentKind', 'LineItem', 'LineResult',
    'PricingInputs', 'ProductInfo', 'PromotionInfo', 'PromotionKind', 'QuoteResult',
    'SIZE_KEYS', 'SizeKey', 'VariantInfo',
]
