"""Quote blueprint: price a cart without persisting anything."""
from flask import Blueprint, current_app, jsonify, request

from posorder.blueprints.metrics import record_quote
from posorder.database import get_session
from posorder.services.quote_service import parse_quote_request, quote_cart

quote_bp = Blueprint('quote', __name__, url_prefix='/api')


@quote_bp.route('/quote', methods=['POST'])
def create_quote():
    """
    Compute a quote for the posted cart.

    Body: {"promotion_code": str | null, "lines": [{line_id, product_id, qty, size_key, options}]}
    """
    promotion_code, lines = parse_quote_request(request.get_json(silent=True))

    quote = quote_cart(
        get_session(),
        promotion_code,
        lines,
        config=current_app.extensions['pricing_config'],
    )
    record_quote(quote)

    return jsonify({'ok': True, **quote.to_dict()})
