# Overview: Flask API routes for checkout and sale lookup; parses input and returns JSON responses.

# backend/kiosko/routes/sales.py
"""
Sales API Routes

- POST /api/sales/quote     price a cart without committing
- POST /api/sales/checkout  commit a cart (stock decrement + sale record)
- GET  /api/sales           recent sales (or a from/to window)
- GET  /api/sales/stats     today and last-7-days counts and totals
- GET  /api/sales/<id>      one sale with its items
"""

from flask import Blueprint, request, jsonify, current_app

from ..exceptions import PosError
from ..money import change_due, from_cents, to_cents
from ..services import cart_service, sales_service
from ..services.sales_service import PAYMENT_CASH
from ..time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/quote")
def quote_route():
    """
    Price a cart.

    Request body: same shape as checkout, payment fields ignored.
    """
    try:
        data = request.get_json() or {}
        cart = cart_service.build_cart(data)
        totals = cart_service.quote(cart)
        return jsonify({"cart": cart.snapshot(), "totals": totals.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to quote cart")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/checkout")
def checkout_route():
    """
    Commit a cart as a sale.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "discount_type": "percent",
        "discount_value": "10",
        "customer_name": "Ana",
        "payment_method": "cash",
        "received": "50.00"   (optional, cash only)
    }
    """
    try:
        data = request.get_json() or {}
        payment_method = data.get("payment_method") if isinstance(data, dict) else None
        if not payment_method:
            return jsonify({"error": "payment_method required"}), 400

        cart = cart_service.build_cart(data)
        received = data.get("received")
        sale = sales_service.commit_sale(cart, payment_method, received=received)

        body = {"sale": sale.to_dict()}
        if payment_method == PAYMENT_CASH and received not in (None, ""):
            body["change_cents"] = to_cents(change_due(from_cents(sale.total_cents), received))
        return jsonify(body), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@sales_bp.get("/")
def list_sales_route():
    """
    Recent sales, or every sale in [from, to) when `from` is given.

    Query params: limit, from, to (ISO-8601, naive means UTC)
    """
    try:
        from_time = parse_iso_datetime(request.args.get("from"))
        to_time = parse_iso_datetime(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "from/to must be ISO-8601 datetimes"}), 400

    if from_time is not None:
        sales = sales_service.query_sales(from_time, to_time)
    else:
        limit = request.args.get("limit", default=50, type=int)
        sales = sales_service.list_sales(limit=max(1, min(limit, 500)))
    return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]}), 200


@sales_bp.get("/stats")
def sales_stats_route():
    return jsonify({"stats": sales_service.get_sales_stats()}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
