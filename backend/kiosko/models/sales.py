from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Committed sale.

    IMMUTABLE: header and items are written once by the commit transaction
    and never updated. Corrections are separate documents.

    cash_register_session_id is the drawer session that was open when the
    sale committed (NULL when the drawer was closed and that is allowed).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_sales_receipt_number"),
        db.Index("ix_sales_session_method", "cash_register_session_id", "payment_method"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(64), nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_percent_bps = db.Column(db.Integer, nullable=True)  # 1000 = 10.00%
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)  # cash, card, transfer

    customer_name = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    cash_register_session_id = db.Column(
        db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=True, index=True
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.line_number",
        cascade="all, delete-orphan",
    )

    @property
    def discount_percent(self) -> Decimal | None:
        if self.discount_percent_bps is None:
            return None
        return Decimal(self.discount_percent_bps) / 100

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "discount_percent": str(self.discount_percent) if self.discount_percent is not None else None,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "cash_register_session_id": self.cash_register_session_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        else:
            data["items_count"] = len(self.items)
        return data


class SaleItem(db.Model):
    """Frozen copy of one cart line at commit time."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_items_line"),
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)  # snapshot

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
        }
