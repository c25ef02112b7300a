"""
Formatting helpers for amounts shown to staff and customers.
Vietnamese style: dot as thousands separator, no decimals for VND.
"""
from decimal import Decimal, InvalidOperation
from typing import Union, Optional


def num_vn(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format a whole number with dot thousands separators.

    Examples:
        num_vn(1500) -> "1.500"
        num_vn(38000) -> "38.000"
        num_vn(-8000) -> "-8.000"
        num_vn(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if num == 0:
        return "0"

    integer_part = str(abs(int(num)))
    sign_str = '-' if num < 0 else ''

    # Group digits by 3 from the right
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return sign_str + '.'.join(groups)[::-1]


def money_vnd(value: Union[int, float, Decimal, str, None], symbol: Optional[str] = '₫') -> str:
    """
    Format an amount in minor units as VND.

    Examples:
        money_vnd(38000) -> "38.000 ₫"
        money_vnd(0) -> "0 ₫"
        money_vnd(None) -> "-"
    """
    formatted = num_vn(value)
    if formatted == "-" or not symbol:
        return formatted
    return f"{formatted} {symbol}"
