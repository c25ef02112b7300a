"""
Quote orchestration.

quote_order() is a pure function of the cart, the pre-loaded pricing inputs,
the pricing configuration and the evaluation instant. It performs no I/O and
keeps no state between calls.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from posorder.pricing.actions import apply_action, apply_percent_off
from posorder.pricing.categories import Category, normalize_category
from posorder.pricing.conditions import CartFacts, evaluate_conditions
from posorder.pricing.config import PricingConfig
from posorder.pricing.free_upsize import apply_free_upsize, eligible_drink_qty, is_free_upsize_promotion
from posorder.pricing.prices import PriceBook
from posorder.pricing.records import parse_rules, parse_scope_targets
from posorder.pricing.scopes import LineIdentity, ScopeResolver
from posorder.pricing.types import (
    Diagnostics, LineItem, LineResult, PercentOff, PricingInputs, ProductInfo,
    PromotionInfo, PromotionKind, QuoteResult, Totals, as_utc,
)

logger = logging.getLogger(__name__)


def _check_lines(lines: Sequence[LineItem]) -> None:
    seen = set()
    for item in lines:
        if item.line_id in seen:
            raise ValueError(f"Duplicate line_id {item.line_id!r}")
        if item.qty < 1:
            raise ValueError(f"Line {item.line_id!r} has non-positive qty {item.qty}")
        seen.add(item.line_id)


def _price_line(item: LineItem, product: Optional[ProductInfo], price_book: PriceBook) -> LineResult:
    line = LineResult(
        line_id=item.line_id,
        product_id=item.product_id,
        qty=item.qty,
        display_size_key=item.size_key,
        charged_size_key=item.size_key,
    )
    unit_price = price_book.resolve(item.product_id, item.size_key) if product is not None else None
    if unit_price is None:
        line.missing_price = True
        return line

    line.unit_price_before = line.unit_price_after = unit_price
    line.line_total_before = line.line_total_after = unit_price * item.qty
    return line


def _admit(promotion: Optional[PromotionInfo], now: datetime) -> Optional[PromotionInfo]:
    if promotion is None:
        return None
    if not promotion.is_admissible(now):
        logger.debug(f"Promotion {promotion.code} inactive or outside its validity window at {now.isoformat()}")
        return None
    return promotion


def _facts(lines: Sequence[LineResult], eligible: Mapping[str, bool]) -> CartFacts:
    priced = [line for line in lines if line.is_priced]
    return CartFacts(
        subtotal=sum(line.line_total_after for line in priced),
        total_qty=sum(line.qty for line in priced),
        eligible_qty=sum(line.qty for line in priced if eligible.get(line.line_id)),
    )


def _apply_flat_discount(
    promotion: PromotionInfo,
    lines: Sequence[LineResult],
    eligible: Mapping[str, bool],
    diagnostics: Diagnostics,
) -> None:
    """DISCOUNT promotions without rules: percent_off on eligible lines."""
    percent = promotion.percent_off
    if percent is None:
        return
    percent = Decimal(str(percent))
    if not percent.is_finite() or percent <= 0 or percent > 100:
        message = f"Promotion {promotion.code} has invalid percent_off {promotion.percent_off!r}; ignored"
        logger.warning(message)
        diagnostics.warnings.append(message)
        return

    outcome = apply_percent_off(PercentOff(percent=percent), [l for l in lines if eligible.get(l.line_id)])
    diagnostics.discount_percent = percent
    if outcome.applied > 0:
        diagnostics.rules_applied.append(outcome.label)


def _run_rules(
    rule_rows: Sequence[Mapping],
    lines: List[LineResult],
    eligible: Mapping[str, bool],
    price_book: PriceBook,
    diagnostics: Diagnostics,
) -> List[LineResult]:
    """Evaluate rules in order; each sees the prices left by earlier rules."""
    rules, warnings = parse_rules(rule_rows)
    diagnostics.warnings.extend(warnings)

    free_items: List[LineResult] = []
    for rule in rules:
        outcome = evaluate_conditions(rule.conditions, _facts(lines, eligible))
        for check, passed in outcome.checks.items():
            diagnostics.conditions_met[f"{rule.id}:{check}"] = passed
        if not outcome.fired:
            continue

        for index, action in enumerate(rule.actions):
            eligible_lines = [l for l in lines if l.is_priced and eligible.get(l.line_id)]
            order_lines = [l for l in lines if l.is_priced]
            result = apply_action(action, eligible_lines, order_lines, price_book, f"free:{rule.id}:{index}")

            if result.warning:
                logger.warning(result.warning)
                diagnostics.warnings.append(result.warning)
            if result.free_line is not None:
                free_items.append(result.free_line)
            if isinstance(action, PercentOff) and diagnostics.discount_percent is None and result.applied:
                diagnostics.discount_percent = action.percent
            diagnostics.unallocated_discount += result.lost
            if result.applied > 0:
                diagnostics.rules_applied.append(result.label)
    return free_items


def _line_debug(line, product, category, identity, eligible, resolver, price_book) -> Dict:
    level = resolver.deciding_level(identity) if resolver is not None and identity is not None else None
    return {
        'product_category': product.category if product is not None else None,
        'normalized_category': category.value,
        'variant_id': identity.variant_id if identity is not None else None,
        'price_source': price_book.source(line.product_id, line.charged_size_key),
        'is_eligible_for_promo': bool(eligible.get(line.line_id)),
        'scope_level': level.value if level is not None else None,
    }


def quote_order(
    lines: Sequence[LineItem],
    inputs: PricingInputs,
    config: Optional[PricingConfig] = None,
    now: Optional[datetime] = None,
) -> QuoteResult:
    """
    Price a cart and apply its promotion.

    Lines come back in input order keyed by line_id. Lines without a resolvable
    price are flagged missing_price, contribute nothing to totals and are
    never eligible for a promotion.

    :param lines: validated cart lines with unique line ids
    :param inputs: catalog, prices, promotion, scope and rule records
    :param config: engine settings, defaults to PricingConfig()
    :param now: instant used for the promotion validity window only
    """
    _check_lines(lines)
    config = config or PricingConfig()
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    diagnostics = Diagnostics()
    price_book = PriceBook(inputs.variants, inputs.current_prices, inputs.legacy_prices)
    diagnostics.warnings.extend(price_book.warnings)

    results: List[LineResult] = []
    categories: Dict[str, Category] = {}
    identities: Dict[str, LineIdentity] = {}
    for item in lines:
        product = inputs.products.get(item.product_id)
        line = _price_line(item, product, price_book)
        results.append(line)
        if product is None:
            categories[line.line_id] = Category.UNKNOWN
            continue
        categories[line.line_id] = normalize_category(product.category)
        identities[line.line_id] = LineIdentity(
            product_id=product.id,
            category=categories[line.line_id],
            variant_id=price_book.variant_id_for(product.id, item.size_key),
            subcategory_id=product.subcategory_id,
        )

    if inputs.promotion is not None:
        diagnostics.promotion_code = inputs.promotion.code
    promotion = _admit(inputs.promotion, now)

    resolver = None
    eligible: Dict[str, bool] = {line.line_id: False for line in results}
    free_items: List[LineResult] = []

    if promotion is not None:
        targets, warnings = parse_scope_targets(inputs.scope_rows)
        diagnostics.warnings.extend(warnings)
        resolver = ScopeResolver(targets)
        for line in results:
            identity = identities.get(line.line_id)
            if line.is_priced and identity is not None:
                eligible[line.line_id] = resolver.is_eligible(identity)

        diagnostics.eligible_qty = sum(l.qty for l in results if eligible[l.line_id])
        diagnostics.drink_qty = eligible_drink_qty(results, eligible, categories)

        if not resolver.has_include:
            logger.debug(f"Promotion {promotion.code} has no include targets; no line is eligible")
        elif is_free_upsize_promotion(promotion, config):
            upsize = apply_free_upsize(results, eligible, categories, price_book, promotion, config)
            diagnostics.free_upsize_applied = upsize.applied
            diagnostics.conditions_met[f"min_drink_qty_{upsize.min_qty}"] = upsize.drink_qty >= upsize.min_qty
        elif promotion.kind is PromotionKind.DISCOUNT and not inputs.rule_rows:
            _apply_flat_discount(promotion, results, eligible, diagnostics)
        else:
            free_items = _run_rules(inputs.rule_rows, results, eligible, price_book, diagnostics)

    priced = [line for line in results if line.is_priced] + free_items
    subtotal_before = sum(line.line_total_before for line in priced)
    grand_total = sum(line.line_total_after for line in priced)
    totals = Totals(
        subtotal_before=subtotal_before,
        discount_total=subtotal_before - grand_total,
        grand_total=grand_total,
    )
    diagnostics.promotion_applied = totals.discount_total > 0 or diagnostics.free_upsize_applied

    if config.debug:
        for line in results:
            product = inputs.products.get(line.product_id)
            line.debug = _line_debug(
                line, product, categories[line.line_id], identities.get(line.line_id),
                eligible, resolver, price_book,
            )
        logger.debug(
            f"Quote: {len(results)} lines, {len(free_items)} free items, "
            f"promotion={diagnostics.promotion_code} eligible_qty={diagnostics.eligible_qty} "
            f"rules={diagnostics.rules_applied} totals={totals.to_dict()}"
        )

    return QuoteResult(
        lines=tuple(results),
        free_items=tuple(free_items),
        totals=totals,
        diagnostics=diagnostics,
    )
