from __future__ import annotations

from ..extensions import db


class HeldOrderRecord(db.Model):
    """
    Parked cart for the database-backed held-order store.

    snapshot holds the serialized cart (lines, discount, customer, notes).
    It is not a sale and reserves no stock. Rows leave this table only
    through retrieve or delete.
    """
    __tablename__ = "held_orders"

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    snapshot = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
