"""
Order service with server-side pricing.

Orders never trust client-submitted prices: the cart is re-quoted with the
same engine at creation time and the result is what gets persisted.
"""
import logging
import math
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from posorder.exceptions import (
    InputValidationError, InvalidStatusTransitionError, MissingPriceError, NotFoundError,
)
from posorder.models import Order, OrderLine, OrderStatus, Product
from posorder.pricing import PricingConfig, QuoteResult
from posorder.pricing.money import round_half_up
from posorder.services.quote_service import parse_lines, parse_promotion_code, quote_cart

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r'\D')


def digits_only_phone(phone: str) -> str:
    return _NON_DIGITS.sub('', phone or '')


def generate_order_code(now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-XXXXXX, unique enough for a single shop."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"


def _optional_str(payload: Mapping, key: str, errors: List[str]) -> str:
    value = payload.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        errors.append(f"{key} must be a string")
        return ''
    return value.strip()


def _parse_amount(raw: Any, name: str, errors: List[str]) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw) or raw < 0:
        errors.append(f"{name} must be a non-negative number")
        return 0
    return round_half_up(raw)


def _parse_shipping(raw: Any, errors: List[str]) -> Dict[str, Any]:
    if raw is None:
        return {'fee': 0, 'discount': 0, 'free': False}
    if not isinstance(raw, Mapping):
        errors.append('shipping must be an object')
        return {'fee': 0, 'discount': 0, 'free': False}
    free = raw.get('free', False)
    if not isinstance(free, bool):
        errors.append('shipping.free must be a boolean')
        free = False
    return {
        'fee': _parse_amount(raw.get('fee'), 'shipping.fee', errors),
        'discount': _parse_amount(raw.get('discount'), 'shipping.discount', errors),
        'free': free,
    }


def shipping_payable(fee: int, discount: int, free: bool) -> int:
    return 0 if free else max(0, fee - discount)


def _product_names(session, product_ids) -> Dict[str, str]:
    product_ids = sorted(set(product_ids))
    if not product_ids:
        return {}
    rows = session.query(Product.id, Product.name).filter(Product.id.in_(product_ids)).all()
    return {pid: name for pid, name in rows}


def create_order(session, payload: Any, config: Optional[PricingConfig] = None,
                 now: Optional[datetime] = None) -> Order:
    """
    Validate an order request, re-quote it and persist the order.

    Raises:
        InputValidationError: malformed request body
        MissingPriceError: a line has no resolvable price
    """
    if not isinstance(payload, Mapping):
        raise InputValidationError(['request body must be a JSON object'])

    errors: List[str] = []
    phone = digits_only_phone(_optional_str(payload, 'phone', errors))
    if not phone:
        errors.append('phone is required')
    customer_name = _optional_str(payload, 'customer_name', errors)
    note = _optional_str(payload, 'note', errors)
    delivery_time = _optional_str(payload, 'delivery_time', errors)
    platform = _optional_str(payload, 'platform', errors)
    shipping = _parse_shipping(payload.get('shipping'), errors)
    try:
        promotion_code = parse_promotion_code(payload.get('promotion_code'))
    except InputValidationError as e:
        errors.extend(e.errors)
        promotion_code = None
    try:
        lines = parse_lines(payload.get('lines'))
    except InputValidationError as e:
        errors.extend(e.errors)
        lines = []
    if errors:
        raise InputValidationError(errors)

    quote: QuoteResult = quote_cart(session, promotion_code, lines, config=config, now=now)
    if quote.has_missing_price:
        raise MissingPriceError(quote.missing_price_line_ids)

    raw_by_id = {raw['line_id'].strip(): raw for raw in payload['lines']}
    names = _product_names(session, [l.product_id for l in quote.lines] + [l.product_id for l in quote.free_items])

    pay_shipping = shipping_payable(shipping['fee'], shipping['discount'], shipping['free'])
    note_parts = [part for part in (note, f"Delivery time: {delivery_time}" if delivery_time else '') if part]

    try:
        order = Order(
            order_code=generate_order_code(now),
            status=OrderStatus.PLACED.value,
            customer_name=customer_name or None,
            customer_phone=phone,
            promotion_code=promotion_code,
            subtotal=quote.totals.subtotal_before,
            discount_total=quote.totals.discount_total,
            shipping_fee=shipping['fee'],
            shipping_discount=min(shipping['discount'], shipping['fee']),
            shipping_is_free=shipping['free'],
            total=quote.totals.grand_total + pay_shipping,
            platform=platform or None,
            note=' | '.join(note_parts) or None,
        )
        session.add(order)

        items = {item.line_id: item for item in lines}
        for position, priced in enumerate(quote.lines):
            raw = raw_by_id.get(priced.line_id, {})
            snapshot_name = raw.get('product_name_snapshot') if isinstance(raw.get('product_name_snapshot'), str) else ''
            order.lines.append(OrderLine(
                position=position,
                line_id=priced.line_id,
                product_id=priced.product_id,
                product_name_snapshot=snapshot_name.strip() or names.get(priced.product_id, ''),
                price_key_snapshot=priced.display_size_key,
                charged_price_key=priced.charged_size_key,
                qty=priced.qty,
                unit_price_snapshot=priced.unit_price_after,
                line_total=priced.line_total_after,
                options_snapshot=dict(items[priced.line_id].options) or None,
                note=raw.get('note') if isinstance(raw.get('note'), str) and raw.get('note').strip() else None,
            ))

        offset = len(quote.lines)
        for index, free in enumerate(quote.free_items):
            order.lines.append(OrderLine(
                position=offset + index,
                line_id=free.line_id,
                product_id=free.product_id,
                product_name_snapshot=names.get(free.product_id, ''),
                price_key_snapshot=free.display_size_key,
                charged_price_key=free.charged_size_key,
                qty=free.qty,
                unit_price_snapshot=0,
                line_total=0,
                is_free_item=True,
            ))

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"Order {order.order_code} placed: {len(quote.lines)} lines, "
        f"items={quote.totals.grand_total} shipping={pay_shipping} total={order.total}"
    )
    return order


def get_order(session, order_code: str) -> Order:
    order = session.query(Order).filter(Order.order_code == order_code).first()
    if order is None:
        raise NotFoundError(f"Order {order_code} not found")
    return order


def parse_status(raw: Any) -> OrderStatus:
    try:
        return OrderStatus(str(raw or '').strip().upper())
    except ValueError:
        allowed = ', '.join(s.value for s in OrderStatus)
        raise InputValidationError([f"status must be one of {allowed}"])


def list_orders(session, status: Optional[str] = None, limit: int = 20, max_limit: int = 100) -> List[Order]:
    """Most recent orders first, optionally filtered by status."""
    limit = max(1, min(int(limit), max_limit))
    query = session.query(Order)
    if status:
        query = query.filter(Order.status == parse_status(status).value)
    return query.order_by(Order.created_at.desc(), Order.order_code.desc()).limit(limit).all()


def update_order_status(session, order_code: str, new_status: Any) -> Order:
    """Move an order forward in its lifecycle (or cancel it)."""
    order = get_order(session, order_code)
    target = parse_status(new_status)
    if not order.can_transition_to(target):
        raise InvalidStatusTransitionError(order.status, target.value)

    previous = order.status
    try:
        order.status = target.value
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order {order_code} status {previous} -> {target.value}")
    return order


def order_to_dict(order: Order) -> Dict[str, Any]:
    return {
        'id': order.id,
        'order_code': order.order_code,
        'status': order.status,
        'customer_name': order.customer_name,
        'customer_phone': order.customer_phone,
        'promotion_code': order.promotion_code,
        'subtotal': order.subtotal,
        'discount_total': order.discount_total,
        'shipping_fee': order.shipping_fee,
        'shipping_discount': order.shipping_discount,
        'shipping_is_free': order.shipping_is_free,
        'total': order.total,
        'platform': order.platform,
        'note': order.note,
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'lines': [
            {
                'line_id': line.line_id,
                'product_id': line.product_id,
                'product_name_snapshot': line.product_name_snapshot,
                'price_key_snapshot': line.price_key_snapshot,
                'charged_price_key': line.charged_price_key,
                'qty': line.qty,
                'unit_price_snapshot': line.unit_price_snapshot,
                'line_total': line.line_total,
                'is_free_item': line.is_free_item,
                'options_snapshot': line.options_snapshot,
                'note': line.note,
            }
            for line in order.lines
        ],
    }
