# Overview: Flask API routes for the cash drawer; parses input and returns JSON responses.

# backend/kiosko/routes/cash_register.py
"""
Cash Register API Routes

DESIGN:
- Session lifecycle: open -> movements -> close (immutable once closed)
- Live aggregates are recomputed from committed sales on every read
"""

from flask import Blueprint, request, jsonify, current_app

from ..exceptions import PosError
from ..services import cash_register_service


cash_register_bp = Blueprint("cash_register", __name__, url_prefix="/api/cash-register")


@cash_register_bp.get("/current")
def current_route():
    """Open session with live totals, or {"session": null}."""
    return jsonify({"session": cash_register_service.get_current_register()}), 200


@cash_register_bp.post("/open")
def open_route():
    """
    Request body:
    {
        "opening_amount": "100.00",
        "notes": "optional"
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("opening_amount") is None:
            return jsonify({"error": "opening_amount required"}), 400

        session = cash_register_service.open_register(data["opening_amount"], notes=data.get("notes"))
        return jsonify({"session": session.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open cash register")
        return jsonify({"error": "Internal server error"}), 500


@cash_register_bp.post("/movements")
def add_movement_route():
    """
    Request body:
    {
        "type": "income" | "expense",
        "amount": "20.00",
        "description": "Change fund"
    }
    """
    try:
        data = request.get_json() or {}
        movement = cash_register_service.add_movement(
            data.get("type"),
            data.get("amount"),
            description=data.get("description"),
        )
        return jsonify({"movement": movement.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add cash movement")
        return jsonify({"error": "Internal server error"}), 500


@cash_register_bp.post("/close")
def close_route():
    """
    Request body:
    {
        "counted_amount": "150.00",
        "session_id": 3,     (optional, defaults to the open session)
        "notes": "optional"
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("counted_amount") is None:
            return jsonify({"error": "counted_amount required"}), 400

        session = cash_register_service.close_register(
            data["counted_amount"],
            notes=data.get("notes"),
            session_id=data.get("session_id"),
        )
        return jsonify({"session": cash_register_service.summarize_session(session)}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close cash register")
        return jsonify({"error": "Internal server error"}), 500


@cash_register_bp.get("/history")
def history_route():
    limit = request.args.get("limit", default=30, type=int)
    history = cash_register_service.get_register_history(limit=max(1, min(limit, 365)))
    return jsonify({"sessions": history}), 200


@cash_register_bp.get("/stats")
def stats_route():
    return jsonify({"stats": cash_register_service.get_register_stats()}), 200


@cash_register_bp.get("/<int:session_id>/movements")
def movements_route(session_id: int):
    try:
        cash_register_service.get_session(session_id)
        movements = cash_register_service.list_movements(session_id)
        return jsonify({"movements": [m.to_dict() for m in movements]}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code


@cash_register_bp.get("/<int:session_id>/sales")
def sales_route(session_id: int):
    try:
        sales = cash_register_service.get_register_sales(session_id)
        return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]}), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
