# Overview: Flask API routes for system health.

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        return jsonify({"status": "ok"}), 200
    except Exception:
        current_app.logger.exception("Health check failed")
        return jsonify({"status": "error"}), 503
