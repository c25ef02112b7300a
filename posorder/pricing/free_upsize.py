"""
Legacy free-upsize promotion.

Eligible drinks ordered small are shown at the large size but billed at the
small price once enough eligible drink units are in the cart. The difference
is reported as a FREE_UPSIZE adjustment and never counted as a discount.
"""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from posorder.pricing.categories import Category
from posorder.pricing.config import PricingConfig
from posorder.pricing.prices import PriceBook
from posorder.pricing.types import Adjustment, AdjustmentKind, LineResult, PromotionInfo
from posorder.utils.formatters import money_vnd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FreeUpsizeOutcome:
    applied: bool
    drink_qty: int
    min_qty: int
    upsized_lines: int = 0


def is_free_upsize_promotion(promotion: Optional[PromotionInfo], config: PricingConfig) -> bool:
    if promotion is None or not config.free_upsize_code:
        return False
    return promotion.code.strip().upper() == config.free_upsize_code.strip().upper()


def eligible_drink_qty(
    lines: Sequence[LineResult],
    eligible: Mapping[str, bool],
    categories: Mapping[str, Category],
) -> int:
    return sum(
        line.qty for line in lines
        if eligible.get(line.line_id) and categories.get(line.line_id) is Category.DRINK
    )


def apply_free_upsize(
    lines: Sequence[LineResult],
    eligible: Mapping[str, bool],
    categories: Mapping[str, Category],
    price_book: PriceBook,
    promotion: PromotionInfo,
    config: PricingConfig,
) -> FreeUpsizeOutcome:
    min_qty = config.free_upsize_min_qty if promotion.min_qty is None else promotion.min_qty
    drink_qty = eligible_drink_qty(lines, eligible, categories)
    if drink_qty < min_qty:
        logger.debug(f"Free upsize not reached: {drink_qty} eligible drinks, need {min_qty}")
        return FreeUpsizeOutcome(applied=False, drink_qty=drink_qty, min_qty=min_qty)

    small_key, large_key = config.free_upsize_small_key, config.free_upsize_large_key
    upsized = 0
    for line in lines:
        if not eligible.get(line.line_id) or categories.get(line.line_id) is not Category.DRINK:
            continue
        if line.charged_size_key != small_key:
            continue

        small_price = price_book.resolve(line.product_id, small_key)
        large_price = price_book.resolve(line.product_id, large_key)
        if small_price is None or large_price is None or large_price <= small_price:
            continue

        line.display_size_key = large_key
        line.adjustments.append(Adjustment(
            AdjustmentKind.FREE_UPSIZE,
            large_price - small_price,
            f"Free upsize {small_key} -> {large_key}, {money_vnd(large_price - small_price)} per unit",
        ))
        upsized += 1

    return FreeUpsizeOutcome(applied=upsized > 0, drink_qty=drink_qty, min_qty=min_qty, upsized_lines=upsized)
