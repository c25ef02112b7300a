"""Explicit configuration for the pricing engine."""
from dataclasses import dataclass
from typing import Any, Mapping

from posorder.pricing.types import SizeKey


@dataclass(frozen=True)
class PricingConfig:
    """
    Engine settings passed into every quote.

    The engine never reads process-wide state; the web layer builds this from
    the Flask config with from_mapping().
    """
    debug: bool = False
    free_upsize_code: str = 'FREE_UPSIZE_5'
    free_upsize_min_qty: int = 5
    free_upsize_small_key: str = SizeKey.SMALL.value
    free_upsize_large_key: str = SizeKey.LARGE.value

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'PricingConfig':
        return cls(
            debug=bool(config.get('PRICING_DEBUG', False)),
            free_upsize_code=config.get('FREE_UPSIZE_PROMO_CODE', cls.free_upsize_code),
            free_upsize_min_qty=int(config.get('FREE_UPSIZE_MIN_QTY', cls.free_upsize_min_qty)),
        )
