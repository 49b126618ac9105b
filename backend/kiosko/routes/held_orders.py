# Overview: Flask API routes for parking and resuming carts.

from flask import Blueprint, request, jsonify, current_app

from ..exceptions import PosError
from ..services import cart_service
from ..services.held_order_service import get_held_order_store


held_orders_bp = Blueprint("held_orders", __name__, url_prefix="/api/held-orders")


@held_orders_bp.get("")
@held_orders_bp.get("/")
def list_route():
    store = get_held_order_store()
    return jsonify({"held_orders": [o.to_dict() for o in store.list()]}), 200


@held_orders_bp.post("")
@held_orders_bp.post("/")
def hold_route():
    """Request body: checkout-shaped cart plus optional "name"."""
    try:
        data = request.get_json() or {}
        cart = cart_service.build_cart(data)
        order = get_held_order_store().hold(cart, name=data.get("name"))
        return jsonify({"held_order": order.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to hold order")
        return jsonify({"error": "Internal server error"}), 500


@held_orders_bp.post("/<order_id>/retrieve")
def retrieve_route(order_id: str):
    try:
        cart = get_held_order_store().retrieve(order_id)
        totals = cart_service.quote(cart)
        return jsonify({"cart": cart.snapshot(), "totals": totals.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to retrieve held order")
        return jsonify({"error": "Internal server error"}), 500


@held_orders_bp.delete("/<order_id>")
def delete_route(order_id: str):
    try:
        get_held_order_store().delete(order_id)
        return jsonify({"deleted": order_id}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
