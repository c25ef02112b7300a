"""Orders blueprint."""
from flask import Blueprint, current_app, jsonify, request

from posorder.database import get_session
from posorder.exceptions import InputValidationError
from posorder.services.order_service import (
    create_order,
    get_order,
    list_orders,
    order_to_dict,
    update_order_status,
)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['POST'])
def place_order():
    """Create an order; prices are recomputed on the server."""
    order = create_order(
        get_session(),
        request.get_json(silent=True),
        config=current_app.extensions['pricing_config'],
    )
    return jsonify({'ok': True, 'order': order_to_dict(order)}), 201


@orders_bp.route('', methods=['GET'])
def list_recent_orders():
    """List recent orders (?status=PLACED&limit=20)."""
    raw_limit = request.args.get('limit', current_app.config['ORDER_LIST_DEFAULT_LIMIT'])
    try:
        limit = int(raw_limit)
    except (TypeError, ValueError):
        raise InputValidationError(['limit must be an integer'])

    orders = list_orders(
        get_session(),
        status=request.args.get('status') or None,
        limit=limit,
        max_limit=current_app.config['ORDER_LIST_MAX_LIMIT'],
    )
    return jsonify({'ok': True, 'orders': [order_to_dict(o) for o in orders]})


@orders_bp.route('/<order_code>', methods=['GET'])
def order_detail(order_code):
    order = get_order(get_session(), order_code)
    return jsonify({'ok': True, 'order': order_to_dict(order)})


@orders_bp.route('/<order_code>', methods=['PATCH'])
def change_order_status(order_code):
    """Body: {"status": "CONFIRMED"}"""
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict) or 'status' not in payload:
        raise InputValidationError(['status is required'])

    order = update_order_status(get_session(), order_code, payload['status'])
    return jsonify({'ok': True, 'order': order_to_dict(order)})
