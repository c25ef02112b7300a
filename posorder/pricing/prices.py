"""Price source resolution (current variant prices, legacy fallback)."""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from posorder.pricing.money import parse_amount
from posorder.pricing.types import VariantInfo

logger = logging.getLogger(__name__)

PriceKey = Tuple[str, str]

CURRENT = 'current'
LEGACY = 'legacy'


class PriceBook:
    """
    Unit prices keyed by (product_id, size_key).

    The current table (prices per variant) wins for a key; the legacy table is
    only consulted when the current table has no price for that same key.
    Sources are never mixed within one key.
    """

    def __init__(
        self,
        variants: Iterable[VariantInfo],
        current_prices: Mapping[str, Any],
        legacy_prices: Mapping[PriceKey, Any],
    ):
        self.warnings: List[str] = []
        self._variants: Dict[str, VariantInfo] = {}
        self._variant_by_key: Dict[PriceKey, str] = {}
        self._current: Dict[PriceKey, int] = {}
        self._legacy: Dict[PriceKey, int] = {}

        for variant in variants:
            self._variants[variant.id] = variant
            key = (variant.product_id, variant.size_key)
            self._variant_by_key.setdefault(key, variant.id)
            if variant.id not in current_prices:
                continue
            amount = parse_amount(current_prices[variant.id])
            if amount is None:
                self._warn(f"Ignoring invalid current price for variant {variant.id}: {current_prices[variant.id]!r}")
                continue
            self._current.setdefault(key, amount)

        for key, raw in legacy_prices.items():
            amount = parse_amount(raw)
            if amount is None:
                self._warn(f"Ignoring invalid legacy price for {key[0]}|{key[1]}: {raw!r}")
                continue
            self._legacy[key] = amount

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def resolve(self, product_id: str, size_key: str) -> Optional[int]:
        """Unit price in minor units, or None when neither source has one."""
        key = (product_id, size_key)
        if key in self._current:
            return self._current[key]
        return self._legacy.get(key)

    def source(self, product_id: str, size_key: str) -> Optional[str]:
        key = (product_id, size_key)
        if key in self._current:
            return CURRENT
        if key in self._legacy:
            return LEGACY
        return None

    def variant_id_for(self, product_id: str, size_key: str) -> Optional[str]:
        return self._variant_by_key.get((product_id, size_key))

    def variant(self, variant_id: str) -> Optional[VariantInfo]:
        return self._variants.get(variant_id)
