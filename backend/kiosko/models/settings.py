from __future__ import annotations

from ..extensions import db


class Setting(db.Model):
    """Key/value business setting (value stored as JSON)."""
    __tablename__ = "settings"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
