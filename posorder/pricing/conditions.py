"""Rule condition evaluation."""
from dataclasses import dataclass, field
from typing import Dict

from posorder.pricing.types import Conditions


@dataclass(frozen=True)
class CartFacts:
    """Aggregate cart numbers a rule can be conditioned on."""
    subtotal: int
    total_qty: int
    eligible_qty: int


@dataclass(frozen=True)
class ConditionOutcome:
    fired: bool
    checks: Dict[str, bool] = field(default_factory=dict)


def evaluate_conditions(conditions: Conditions, facts: CartFacts) -> ConditionOutcome:
    """All declared minimums must hold; a rule without conditions always fires."""
    checks = {}
    if conditions.min_order_value is not None:
        checks[f"min_order_value_{conditions.min_order_value}"] = facts.subtotal >= conditions.min_order_value
    if conditions.min_qty is not None:
        checks[f"min_qty_{conditions.min_qty}"] = facts.total_qty >= conditions.min_qty
    if conditions.min_eligible_qty is not None:
        checks[f"min_eligible_qty_{conditions.min_eligible_qty}"] = facts.eligible_qty >= conditions.min_eligible_qty
    return ConditionOutcome(fired=all(checks.values()), checks=checks)
