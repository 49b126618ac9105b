"""
Sale commit transaction.

WHY: Turning a cart into a sale touches money and stock at once. Stock
re-check, receipt allocation, sale insert and stock decrement run in one
database transaction: either all of it is visible afterwards or none of it.

CONCURRENCY:
- SQLite: BEGIN IMMEDIATE serializes writers for the whole commit.
- Other dialects: product rows are locked FOR UPDATE and every decrement is a
  conditional UPDATE (stock >= qty), so the store decides who gets the
  last unit.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import case, func

from ..cart import DISCOUNT_PERCENT, Cart
from ..exceptions import (
    DiscountNotAllowed,
    EmptyCart,
    InsufficientStock,
    InvalidAmount,
    InvalidPaymentMethod,
    NotFound,
    NotOpen,
)
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..money import ZERO, to_cents, to_decimal
from ..time_utils import utcnow
from . import settings_service
from .cash_register_service import get_open_session
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .document_service import allocate_document_number
from .inventory_service import decrement_stock

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_TRANSFER = "transfer"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_TRANSFER)


def _parse_received(received):
    if received is None or received == "":
        return None
    try:
        amount = to_decimal(received)
    except ValueError as exc:
        raise InvalidAmount(str(exc))
    if amount < 0:
        raise InvalidAmount("Received amount cannot be negative")
    return amount


def _check_discount(cart: Cart) -> None:
    has_global = cart.discount_type is not None and cart.discount_value > 0
    has_line = any(line.discount > 0 for line in cart.lines)
    if not (has_global or has_line):
        return

    sales_settings = settings_service.get_sales_settings()
    if not sales_settings["allow_discounts"]:
        raise DiscountNotAllowed("Discounts are disabled")

    max_pct = sales_settings["max_discount_percent"]
    if cart.discount_type == DISCOUNT_PERCENT and cart.discount_value > max_pct:
        raise DiscountNotAllowed(
            f"Discount exceeds the maximum of {max_pct}%",
            details={"requested_percent": str(cart.discount_value), "max_percent": str(max_pct)},
        )


def _validate_stock(cart: Cart, products: dict[int, Product]) -> None:
    """Authoritative stock check against locked, current product rows."""
    for line in cart.lines:
        product = products.get(line.product_id)
        if product is None or not product.is_active:
            raise InsufficientStock(line.product_id, line.product_name, line.quantity, 0)
        if line.quantity > product.stock:
            raise InsufficientStock(product.id, product.name, line.quantity, product.stock)


def insert_sale(header: dict, items: list[dict]) -> Sale:
    """Persist a sale header and its frozen items (flush only, no commit)."""
    sale = Sale(**header)
    for number, item in enumerate(items, start=1):
        sale.items.append(SaleItem(line_number=number, **item))
    db.session.add(sale)
    db.session.flush()
    return sale


def commit_sale(cart: Cart, payment_method: str, received=None) -> Sale:
    """
    Commit `cart` as a sale and decrement stock, all-or-nothing.

    The caller's cart is never modified; on success the caller clears it.
    On any failure nothing is written and the cart can be edited or retried.

    Raises:
        EmptyCart, InvalidPaymentMethod, InvalidAmount, DiscountNotAllowed,
        NotOpen (when REQUIRE_OPEN_REGISTER is set), InsufficientStock,
        CommitFailure (store conflicts that survived the retries)
    """
    if cart.is_empty:
        raise EmptyCart("Cannot check out an empty cart")
    if payment_method not in PAYMENT_METHODS:
        raise InvalidPaymentMethod(
            f"Unknown payment method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )
    received_amount = _parse_received(received)

    # Retries must not see edits the UI makes while we wait on the store
    frozen = cart.copy()
    require_open = current_app.config.get("REQUIRE_OPEN_REGISTER", False)
    prefix = current_app.config.get("RECEIPT_PREFIX", "R")

    def _op() -> Sale:
        begin_immediate()

        tax_rate = settings_service.get_tax_rate()
        _check_discount(frozen)
        totals = frozen.totals(tax_rate)
        if totals.total < ZERO:
            raise InvalidAmount("Sale total cannot be negative")

        if payment_method == PAYMENT_CASH and received_amount is not None and received_amount < totals.total:
            raise InvalidAmount(
                "Received cash is less than the sale total",
                details={"received_cents": to_cents(received_amount), "total_cents": to_cents(totals.total)},
            )

        session = get_open_session()
        if session is None and require_open:
            raise NotOpen("Open the cash register before selling")

        product_ids = [line.product_id for line in frozen.lines]
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids))
            ).populate_existing().all()
        }
        _validate_stock(frozen, products)

        receipt_number = allocate_document_number(document_type="SALE", prefix=prefix)

        header = {
            "receipt_number": receipt_number,
            "subtotal_cents": to_cents(totals.subtotal),
            "discount_cents": to_cents(totals.discount_amount),
            # percent -> basis points
            "discount_percent_bps": to_cents(frozen.discount_percent) if frozen.discount_percent is not None else None,
            "tax_rate_bps": to_cents(tax_rate),
            "tax_cents": to_cents(totals.tax_amount),
            "total_cents": to_cents(totals.total),
            "payment_method": payment_method,
            "customer_name": frozen.customer_name,
            "notes": frozen.notes,
            "cash_register_session_id": session.id if session else None,
            "created_at": utcnow(),
        }
        items = [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": line.quantity,
                "unit_price_cents": to_cents(line.unit_price),
                "discount_cents": to_cents(line.discount),
                "subtotal_cents": to_cents(line.subtotal),
            }
            for line in frozen.lines
        ]
        sale = insert_sale(header, items)

        for line in frozen.lines:
            decrement_stock(
                line.product_id,
                line.quantity,
                sale_id=sale.id,
                reason=f"Sale {receipt_number}",
            )

        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    current_app.logger.info(
        "Sale %s committed: total_cents=%s method=%s session=%s",
        sale.receipt_number,
        sale.total_cents,
        sale.payment_method,
        sale.cash_register_session_id,
    )
    return sale


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFound("Sale not found", details={"sale_id": sale_id})
    return sale


def get_sale_by_receipt(receipt_number: str) -> Sale:
    sale = db.session.query(Sale).filter_by(receipt_number=receipt_number).first()
    if not sale:
        raise NotFound("Sale not found", details={"receipt_number": receipt_number})
    return sale


def list_sales(limit: int = 50) -> list[Sale]:
    return (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def query_sales(from_time: datetime, to_time: datetime | None = None) -> list[Sale]:
    """Sales created in the half-open window [from_time, to_time)."""
    q = db.session.query(Sale).filter(Sale.created_at >= from_time)
    if to_time is not None:
        q = q.filter(Sale.created_at < to_time)
    return q.order_by(Sale.created_at, Sale.id).all()


def get_sales_stats(now: datetime | None = None) -> dict:
    """
    Sale counts and totals for today and the last seven days.

    Days start at UTC midnight; "week" covers today plus the seven days before it.
    """
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today - timedelta(days=7)

    in_today = Sale.created_at >= today
    today_count, today_total, week_count, week_total = (
        db.session.query(
            func.coalesce(func.sum(case((in_today, 1), else_=0)), 0),
            func.coalesce(func.sum(case((in_today, Sale.total_cents), else_=0)), 0),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
        )
        .filter(Sale.created_at >= week_start)
        .one()
    )
    return {
        "today_sales": int(today_count),
        "today_total_cents": int(today_total),
        "week_sales": int(week_count),
        "week_total_cents": int(week_total),
    }
