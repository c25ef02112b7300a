"""
Parsing of stored scope targets and promotion rules into engine types.

Stored records are loosely typed JSON. A record with an unknown target type,
action type or condition is skipped and reported as a warning so that one bad
promotion configuration cannot block checkout.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from posorder.pricing.types import (
    Action, Allocation, AmountOff, AmountOffPerItem, ApplyTo, Conditions,
    FreeItem, PercentOff, Rule, ScopeTarget, TargetType,
)

logger = logging.getLogger(__name__)

# Older admin screens stored menu sections as SUBSECTION
_TARGET_ALIASES = {'SUBSECTION': TargetType.SUBCATEGORY}

CONDITION_KEYS = ('min_order_value', 'min_qty', 'min_eligible_qty')


class MalformedRecordError(ValueError):
    """A stored scope/rule/action record that cannot be interpreted."""


def _positive_int(value: Any, name: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(f"{name} must be a number")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise MalformedRecordError(f"{name} must be a number, got {value!r}")
    if not number.is_finite() or number != number.to_integral_value():
        raise MalformedRecordError(f"{name} must be a whole number, got {value!r}")
    number = int(number)
    if number < 0 or (number == 0 and not allow_zero):
        raise MalformedRecordError(f"{name} must be positive, got {value!r}")
    return number


def _enum(enum_cls, value: Any, name: str, default=None):
    if value is None:
        if default is None:
            raise MalformedRecordError(f"{name} is required")
        return default
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise MalformedRecordError(f"unknown {name} {value!r}")


# ---------------------------------------------------------------------------
# Scope targets
# ---------------------------------------------------------------------------

def parse_scope_target(row: Mapping[str, Any]) -> ScopeTarget:
    raw_type = str(row.get('target_type') or '').strip().upper()
    target_type = _TARGET_ALIASES.get(raw_type)
    if target_type is None:
        target_type = _enum(TargetType, raw_type or None, 'target_type')

    target_id = row.get('target_id')
    if target_id is None or not str(target_id).strip():
        raise MalformedRecordError('target_id is required')

    included = row.get('is_included', row.get('included', True))
    return ScopeTarget(target_type=target_type, target_id=str(target_id).strip(), included=bool(included))


def parse_scope_targets(rows: Sequence[Mapping[str, Any]]) -> Tuple[List[ScopeTarget], List[str]]:
    targets, warnings = [], []
    for row in rows:
        try:
            targets.append(parse_scope_target(row))
        except MalformedRecordError as e:
            message = f"Skipped scope target {dict(row)!r}: {e}"
            logger.warning(message)
            warnings.append(message)
    return targets, warnings


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def parse_conditions(raw: Optional[Mapping[str, Any]]) -> Conditions:
    if raw is None:
        return Conditions()
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"conditions must be an object, got {type(raw).__name__}")

    unknown = sorted(set(raw) - set(CONDITION_KEYS))
    if unknown:
        raise MalformedRecordError(f"unknown condition(s) {', '.join(unknown)}")

    values = {}
    for key in CONDITION_KEYS:
        if raw.get(key) is not None:
            values[key] = _positive_int(raw[key], key, allow_zero=True)
    return Conditions(**values)


def parse_action(raw: Mapping[str, Any]) -> Action:
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"action must be an object, got {type(raw).__name__}")

    action_type = str(raw.get('type') or '').strip().upper()

    if action_type == PercentOff.type:
        try:
            percent = Decimal(str(raw.get('percent')))
        except (InvalidOperation, ValueError):
            raise MalformedRecordError(f"percent must be a number, got {raw.get('percent')!r}")
        if not percent.is_finite() or percent <= 0 or percent > 100:
            raise MalformedRecordError(f"percent must be in (0, 100], got {raw.get('percent')!r}")
        return PercentOff(
            percent=percent,
            apply_to=_enum(ApplyTo, raw.get('apply_to'), 'apply_to', ApplyTo.ELIGIBLE_LINES),
        )

    if action_type == AmountOff.type:
        return AmountOff(
            amount=_positive_int(raw.get('amount'), 'amount'),
            apply_to=_enum(ApplyTo, raw.get('apply_to'), 'apply_to', ApplyTo.ELIGIBLE_LINES),
            allocation=_enum(Allocation, raw.get('allocation'), 'allocation', Allocation.PROPORTIONAL),
        )

    if action_type == AmountOffPerItem.type:
        max_items = raw.get('max_items')
        return AmountOffPerItem(
            amount=_positive_int(raw.get('amount'), 'amount'),
            max_items=_positive_int(max_items, 'max_items') if max_items is not None else None,
        )

    if action_type == FreeItem.type:
        variant_id = raw.get('variant_id')
        if not variant_id:
            raise MalformedRecordError('variant_id is required')
        return FreeItem(
            variant_id=str(variant_id),
            qty=_positive_int(raw.get('qty', 1), 'qty'),
            max_per_order=_positive_int(raw.get('max_per_order', 1), 'max_per_order'),
        )

    raise MalformedRecordError(f"unknown action type {raw.get('type')!r}")


def parse_rule(row: Mapping[str, Any]) -> Tuple[Rule, List[str]]:
    """Parse one rule; malformed actions are dropped, malformed conditions drop the rule."""
    rule_id = str(row.get('id') or f"rule-{row.get('rule_order', 0)}")
    conditions = parse_conditions(row.get('conditions'))

    raw_actions = row.get('actions') or []
    if isinstance(raw_actions, Mapping):
        raw_actions = [raw_actions]

    actions, warnings = [], []
    for raw in raw_actions:
        try:
            actions.append(parse_action(raw))
        except MalformedRecordError as e:
            message = f"Skipped action in rule {rule_id}: {e}"
            logger.warning(message)
            warnings.append(message)

    rule = Rule(
        id=rule_id,
        rule_order=_positive_int(row.get('rule_order', 0), 'rule_order', allow_zero=True),
        conditions=conditions,
        actions=tuple(actions),
    )
    return rule, warnings


def parse_rules(rows: Sequence[Mapping[str, Any]]) -> Tuple[List[Rule], List[str]]:
    """Parse and order rules by (rule_order, id)."""
    rules, warnings = [], []
    for row in rows:
        try:
            rule, action_warnings = parse_rule(row)
        except MalformedRecordError as e:
            message = f"Skipped rule {row.get('id')!r}: {e}"
            logger.warning(message)
            warnings.append(message)
            continue
        rules.append(rule)
        warnings.extend(action_warnings)
    rules.sort(key=lambda r: (r.rule_order, r.id))
    return rules, warnings


def free_item_variant_ids(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Variant ids referenced by FREE_ITEM actions, for the data loader."""
    ids = []
    for row in rows:
        raw_actions = row.get('actions') or []
        if isinstance(raw_actions, Mapping):
            raw_actions = [raw_actions]
        for raw in raw_actions:
            if isinstance(raw, Mapping) and str(raw.get('type') or '').upper() == FreeItem.type and raw.get('variant_id'):
                ids.append(str(raw['variant_id']))
    return ids
