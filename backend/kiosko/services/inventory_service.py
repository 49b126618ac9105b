# Overview: Stock repository: reads catalog stock and applies sale decrements.

from __future__ import annotations

from sqlalchemy import update

from ..exceptions import InsufficientStock, NotFound
from ..extensions import db
from ..models import Product, StockMovement
from ..time_utils import utcnow


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def get_stock(product_id: int) -> int:
    """Current on-hand quantity (authoritative store value)."""
    stock = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
    if stock is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return int(stock)


def get_active_products(product_ids) -> dict[int, Product]:
    """
    Resolve product ids against the current catalog.

    Deleted and deactivated products are simply absent from the result.
    """
    ids = list({pid for pid in product_ids if pid is not None})
    if not ids:
        return {}
    products = (
        db.session.query(Product)
        .filter(Product.id.in_(ids), Product.is_active.is_(True))
        .all()
    )
    return {p.id: p for p in products}


def decrement_stock(
    product_id: int,
    quantity: int,
    *,
    sale_id: int | None = None,
    reason: str | None = None,
) -> StockMovement:
    """
    Take `quantity` units out of stock inside the caller's transaction.

    The UPDATE only matches while stock >= quantity, so two transactions
    racing for the last unit cannot both succeed: the loser sees rowcount 0
    and gets InsufficientStock. Does not commit.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(
            stock=Product.stock - quantity,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != 1:
        product = db.session.get(Product, product_id)
        if product is not None:
            db.session.refresh(product)
        raise InsufficientStock(
            product_id,
            product.name if product else None,
            quantity,
            product.stock if product else 0,
        )

    movement = StockMovement(
        product_id=product_id,
        type="sale",
        quantity=-quantity,
        reason=reason,
        sale_id=sale_id,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def list_stock_movements(product_id: int, limit: int = 200) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
