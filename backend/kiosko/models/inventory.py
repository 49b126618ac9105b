from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product with its on-hand stock.

    Catalog CRUD lives in the back-office; this core only reads name/price
    and decrements `stock` inside the sale commit transaction.

    STOCK: `stock` never goes negative. Decrements are conditional UPDATEs
    (stock >= qty) so the database arbitrates the last unit.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def price(self):
        return from_cents(self.price_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock history.

    Written in the same transaction as the stock change it records.
    quantity is a signed delta (sales are negative).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)  # sale
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
