from __future__ import annotations

from sqlalchemy import text

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


class CashRegisterSession(db.Model):
    """
    One open -> closed cycle of the cash drawer.

    LIFECYCLE:
    - open: accepting sales and movements
    - closed: counted, expected and difference frozen

    At most one row may have status='open' (partial unique index), so every
    front end agrees on the current session. A closed session is never
    reopened; opening again creates a new row.
    """
    __tablename__ = "cash_register_sessions"
    __table_args__ = (
        db.Index(
            "uq_cash_register_sessions_one_open",
            "status",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
        db.CheckConstraint("status IN ('open', 'closed')", name="ck_cash_register_sessions_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="open", index=True)

    # All amounts in cents. closing/expected/difference stay NULL until close.
    opening_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_amount_cents = db.Column(db.Integer, nullable=True)
    expected_amount_cents = db.Column(db.Integer, nullable=True)
    difference_cents = db.Column(db.Integer, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    closing_notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    movements = db.relationship(
        "CashMovement",
        backref="session",
        lazy=True,
        order_by="CashMovement.created_at",
    )
    sales = db.relationship("Sale", backref="cash_register_session", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def opening_amount(self):
        return from_cents(self.opening_amount_cents)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "opening_amount_cents": self.opening_amount_cents,
            "closing_amount_cents": self.closing_amount_cents,
            "expected_amount_cents": self.expected_amount_cents,
            "difference_cents": self.difference_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
            "closing_notes": self.closing_notes,
            "version_id": self.version_id,
        }


class CashMovement(db.Model):
    """
    Manual drawer adjustment (income puts cash in, expense takes it out).

    Movements outlive their session for audit; a closed session's figures
    are frozen at close time and are not recomputed from them.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_cash_movements_type"),
        db.Index("ix_cash_movements_session_created", "cash_register_session_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cash_register_session_id = db.Column(
        db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=False
    )
    type = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @property
    def amount(self):
        return from_cents(self.amount_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cash_register_session_id": self.cash_register_session_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
