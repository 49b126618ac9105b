# Overview: Flask API route for reading a product's stock and its movement history.

from flask import Blueprint, request, jsonify

from ..exceptions import PosError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/products")


@inventory_bp.get("/<int:product_id>/stock")
def stock_route(product_id: int):
    """Current stock plus the most recent stock movements (newest first)."""
    try:
        product = inventory_service.get_product(product_id)
        limit = request.args.get("limit", default=50, type=int)
        movements = inventory_service.list_stock_movements(product_id, limit=max(1, min(limit, 200)))
        return jsonify({
            "product": product.to_dict(),
            "movements": [m.to_dict() for m in movements],
        }), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
