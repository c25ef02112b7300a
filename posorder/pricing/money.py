"""Minor-unit money helpers (VND has no sub-unit)."""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError('boolean is not an amount')
    return Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest minor unit, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def parse_amount(value) -> Optional[int]:
    """
    Parse a stored price/amount into minor units.

    Returns None for missing, non-numeric or negative values.
    """
    if value is None:
        return None
    try:
        amount = round_half_up(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if amount < 0:
        return None
    return amount
