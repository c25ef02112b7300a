"""
Quote service: request validation and server-side pricing.

Used by both the quote endpoint and order creation, so an order is always
priced by the same computation the customer was shown.
"""
import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from posorder.exceptions import InputValidationError
from posorder.pricing import LineItem, PricingConfig, QuoteResult, SIZE_KEYS, quote_order
from posorder.services.pricing_data_service import load_pricing_inputs

logger = logging.getLogger(__name__)

MAX_LINES = 200


def _parse_line(index: int, raw: Any, errors: List[str]) -> Optional[LineItem]:
    prefix = f"lines[{index}]"
    if not isinstance(raw, Mapping):
        errors.append(f"{prefix} must be an object")
        return None

    line_id = raw.get('line_id')
    if not isinstance(line_id, str) or not line_id.strip():
        errors.append(f"{prefix}.line_id is required")
        line_id = None

    product_id = raw.get('product_id')
    if not isinstance(product_id, str) or not product_id.strip():
        errors.append(f"{prefix}.product_id is required")
        product_id = None

    qty = raw.get('qty')
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        errors.append(f"{prefix}.qty must be a positive integer")
        qty = None

    # price_key is what older clients send
    size_key = raw.get('size_key', raw.get('price_key'))
    if not isinstance(size_key, str) or size_key.strip().upper() not in SIZE_KEYS:
        errors.append(f"{prefix}.size_key must be one of {', '.join(sorted(SIZE_KEYS))}")
        size_key = None

    options = raw.get('options') or {}
    if not isinstance(options, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in options.items()
    ):
        errors.append(f"{prefix}.options must map strings to strings")
        options = None

    if None in (line_id, product_id, qty, size_key, options):
        return None
    return LineItem(
        line_id=line_id.strip(),
        product_id=product_id.strip(),
        qty=qty,
        size_key=size_key.strip().upper(),
        options=dict(options),
    )


def parse_lines(raw_lines: Any) -> List[LineItem]:
    """Validate cart lines; raises InputValidationError listing every problem."""
    if not isinstance(raw_lines, list) or not raw_lines:
        raise InputValidationError(['lines must be a non-empty list'])
    if len(raw_lines) > MAX_LINES:
        raise InputValidationError([f"at most {MAX_LINES} lines per request"])

    errors: List[str] = []
    lines: List[LineItem] = []
    seen = set()
    for index, raw in enumerate(raw_lines):
        line = _parse_line(index, raw, errors)
        if line is None:
            continue
        if line.line_id in seen:
            errors.append(f"lines[{index}].line_id {line.line_id!r} is duplicated")
            continue
        seen.add(line.line_id)
        lines.append(line)

    if errors:
        raise InputValidationError(errors)
    return lines


def parse_promotion_code(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InputValidationError(['promotion_code must be a string or null'])
    return raw.strip() or None


def parse_quote_request(payload: Any) -> Tuple[Optional[str], List[LineItem]]:
    """
    Validate a quote request body.

    Returns (promotion_code, lines). Nothing is priced here.
    """
    if not isinstance(payload, Mapping):
        raise InputValidationError(['request body must be a JSON object'])
    promotion_code = parse_promotion_code(payload.get('promotion_code'))
    return promotion_code, parse_lines(payload.get('lines'))


def quote_cart(
    session,
    promotion_code: Optional[str],
    lines: Sequence[LineItem],
    config: Optional[PricingConfig] = None,
    now: Optional[datetime] = None,
) -> QuoteResult:
    """Load pricing inputs for the cart and run the engine."""
    inputs = load_pricing_inputs(session, [line.product_id for line in lines], promotion_code)
    quote = quote_order(lines, inputs, config=config, now=now)

    if quote.has_missing_price:
        logger.warning(f"Quote has lines without price: {', '.join(quote.missing_price_line_ids)}")
    logger.debug(
        f"Quoted {len(lines)} lines with promotion {promotion_code!r}: "
        f"grand_total={quote.totals.grand_total} discount={quote.totals.discount_total}"
    )
    return quote
