"""
Application of fired rule actions to priced lines.

All amounts work on line totals and are rounded half-up once per line;
unit_price_after is derived from the line total for display. A line total is
never driven below zero: whatever part of a flat amount cannot be placed is
reported back as lost.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from posorder.pricing.money import round_half_up
from posorder.pricing.prices import PriceBook
from posorder.pricing.types import (
    Action, AdjustmentKind, Adjustment, Allocation, AmountOff, AmountOffPerItem,
    ApplyTo, FreeItem, LineResult, PercentOff,
)
from posorder.utils.formatters import money_vnd


@dataclass
class ActionOutcome:
    label: str
    applied: int = 0
    lost: int = 0
    free_line: Optional[LineResult] = None
    warning: Optional[str] = None


def _percent_label(percent: Decimal) -> str:
    return format(percent.normalize(), 'f')


def allocate_proportional(amount: int, weights: Sequence[int]) -> List[int]:
    """
    Split amount across weights, largest remainder first.

    Shares sum to min(amount, sum(weights)) and no share exceeds its weight.
    Ties go to the earlier position.
    """
    total = sum(weights)
    if total <= 0 or amount <= 0:
        return [0] * len(weights)
    if amount >= total:
        return list(weights)

    shares, remainders = [], []
    for index, weight in enumerate(weights):
        share, rem = divmod(amount * weight, total)
        shares.append(share)
        remainders.append((-rem, index))

    leftover = amount - sum(shares)
    for _, index in sorted(remainders)[:leftover]:
        shares[index] += 1
    return shares


def allocate_equal(amount: int, weights: Sequence[int]) -> List[int]:
    """Even split (extra units to earlier lines), each share capped at its weight."""
    if not weights or amount <= 0:
        return [0] * len(weights)
    base, extra = divmod(amount, len(weights))
    return [min(base + (1 if index < extra else 0), weight) for index, weight in enumerate(weights)]


def reduce_line(line: LineResult, amount: int, kind: AdjustmentKind, details: str) -> int:
    """Take up to amount off a line total; returns what was actually taken."""
    amount = max(0, min(amount, line.line_total_after))
    if amount == 0:
        return 0
    line.line_total_after -= amount
    line.unit_price_after = round_half_up(Decimal(line.line_total_after) / line.qty)
    line.adjustments.append(Adjustment(kind, amount, details))
    return amount


def _targets(apply_to: ApplyTo, eligible: Sequence[LineResult], order: Sequence[LineResult]) -> Sequence[LineResult]:
    return order if apply_to is ApplyTo.ORDER_TOTAL else eligible


def apply_percent_off(action: PercentOff, targets: Sequence[LineResult]) -> ActionOutcome:
    label = _percent_label(action.percent)
    outcome = ActionOutcome(label=f"PERCENT_OFF_{label}")
    scope = 'order' if action.apply_to is ApplyTo.ORDER_TOTAL else 'eligible items'
    for line in targets:
        remaining = round_half_up(Decimal(line.line_total_after) * (100 - action.percent) / 100)
        outcome.applied += reduce_line(
            line, line.line_total_after - remaining, AdjustmentKind.PERCENT_OFF,
            f"{label}% off {scope}",
        )
    return outcome


def apply_amount_off(action: AmountOff, targets: Sequence[LineResult]) -> ActionOutcome:
    outcome = ActionOutcome(label=f"AMOUNT_OFF_{action.amount}")
    weights = [line.line_total_after for line in targets]
    if action.allocation is Allocation.EQUAL:
        shares = allocate_equal(action.amount, weights)
    else:
        shares = allocate_proportional(action.amount, weights)

    details = f"{money_vnd(action.amount)} off, {action.allocation.value.lower()} split"
    for line, share in zip(targets, shares):
        outcome.applied += reduce_line(line, share, AdjustmentKind.AMOUNT_OFF, details)
    outcome.lost = action.amount - outcome.applied
    return outcome


def apply_amount_off_per_item(action: AmountOffPerItem, targets: Sequence[LineResult]) -> ActionOutcome:
    """Discount up to max_items units, counted across lines in cart order."""
    outcome = ActionOutcome(label=f"AMOUNT_OFF_PER_ITEM_{action.amount}")
    remaining_units = action.max_items
    requested = 0
    for line in targets:
        if remaining_units is not None and remaining_units <= 0:
            break
        units = line.qty if remaining_units is None else min(line.qty, remaining_units)
        wanted = action.amount * units
        requested += wanted
        outcome.applied += reduce_line(
            line, wanted, AdjustmentKind.AMOUNT_OFF_PER_ITEM,
            f"{money_vnd(action.amount)} off per item ({units} items)",
        )
        if remaining_units is not None:
            remaining_units -= units
    outcome.lost = requested - outcome.applied
    return outcome


def build_free_item(action: FreeItem, price_book: PriceBook, line_id: str) -> ActionOutcome:
    """Synthesize a gift line at the variant's normal price, charged zero."""
    outcome = ActionOutcome(label=f"FREE_ITEM_{action.variant_id}")
    variant = price_book.variant(action.variant_id)
    if variant is None:
        outcome.warning = f"Free item variant {action.variant_id} not found; action skipped"
        return outcome
    unit_price = price_book.resolve(variant.product_id, variant.size_key)
    if unit_price is None:
        outcome.warning = f"Free item variant {action.variant_id} has no price; action skipped"
        return outcome

    qty = min(action.qty, action.max_per_order)
    value = unit_price * qty
    outcome.free_line = LineResult(
        line_id=line_id,
        product_id=variant.product_id,
        qty=qty,
        display_size_key=variant.size_key,
        charged_size_key=variant.size_key,
        unit_price_before=unit_price,
        unit_price_after=0,
        line_total_before=value,
        line_total_after=0,
        adjustments=[Adjustment(AdjustmentKind.FREE_ITEM, value, f"Free gift item ({qty}x)")],
        is_free_item=True,
    )
    outcome.applied = value
    return outcome


def apply_action(
    action: Action,
    eligible: Sequence[LineResult],
    order: Sequence[LineResult],
    price_book: PriceBook,
    free_line_id: str,
) -> ActionOutcome:
    """Dispatch on the action's type; every Action variant is handled."""
    if isinstance(action, PercentOff):
        return apply_percent_off(action, _targets(action.apply_to, eligible, order))
    if isinstance(action, AmountOff):
        return apply_amount_off(action, _targets(action.apply_to, eligible, order))
    if isinstance(action, AmountOffPerItem):
        return apply_amount_off_per_item(action, eligible)
    if isinstance(action, FreeItem):
        return build_free_item(action, price_book, free_line_id)
    raise TypeError(f"Unhandled action {action!r}")
