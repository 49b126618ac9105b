"""
Held (parked) orders.

A cashier can park the current cart, serve someone else and pick it up
later. A held order is a deep snapshot of the cart; it is not a sale and
holds no claim on stock.

Storage sits behind HeldOrderStore so the same hold/retrieve rules apply to
an in-process map or a database table. The only ways an entry leaves a
store are retrieve() (at most once) and delete().

Retrieval re-resolves every line against the current catalog: name, price
and stock come from the product as it is now, and lines whose product was
deleted or deactivated are dropped.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from flask import current_app

from ..cart import Cart, LineItem
from ..exceptions import NotFound
from ..extensions import db
from ..models import HeldOrderRecord
from ..money import round_money, to_cents
from ..time_utils import to_utc_z, utcnow
from .inventory_service import get_active_products

# product ids -> {product_id: product-like with id/name/price/stock}
ProductResolver = Callable[[list], dict]


@dataclass(frozen=True)
class HeldOrder:
    id: str
    name: str
    created_at: datetime
    snapshot: dict

    def to_cart(self) -> Cart:
        return Cart.from_snapshot(self.snapshot)

    def to_dict(self) -> dict:
        cart = self.to_cart()
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
            "customer_name": cart.customer_name,
            "items_count": cart.items_count,
            "subtotal_cents": to_cents(cart.totals().subtotal),
            "cart": self.snapshot,
        }


def rebuild_cart(order: HeldOrder, resolve_products: ProductResolver) -> Cart:
    """Cart from a held snapshot, refreshed against the current catalog."""
    held = order.to_cart()
    products = resolve_products([line.product_id for line in held.lines])

    cart = Cart(
        discount_type=held.discount_type,
        discount_value=held.discount_value,
        customer_name=held.customer_name,
        notes=held.notes,
    )
    for line in held.lines:
        product = products.get(line.product_id)
        if product is None:
            current_app.logger.info(
                "Held order %s: dropping line for missing product %s", order.id, line.product_id
            )
            continue
        cart.lines.append(
            LineItem(
                product_id=product.id,
                product_name=product.name,
                unit_price=round_money(product.price),
                quantity=line.quantity,
                discount=line.discount,
                stock_snapshot=product.stock,
            )
        )
    return cart


def _default_name(created_at: datetime) -> str:
    return f"Held order {created_at:%H:%M:%S}"


class HeldOrderStore:
    """Keyed store of held orders; subclasses supply the storage primitives."""

    def _save(self, order: HeldOrder) -> None:
        raise NotImplementedError

    def _load(self, order_id: str) -> HeldOrder | None:
        raise NotImplementedError

    def _all(self) -> list[HeldOrder]:
        raise NotImplementedError

    def _remove(self, order_id: str) -> bool:
        """Remove an entry; False when it was already gone."""
        raise NotImplementedError

    def hold(self, cart: Cart, name: str | None = None) -> HeldOrder:
        created_at = utcnow()
        order = HeldOrder(
            id=uuid.uuid4().hex,
            name=(name or "").strip() or _default_name(created_at),
            created_at=created_at,
            snapshot=cart.snapshot(),
        )
        self._save(order)
        current_app.logger.info("Held order %s parked (%s lines)", order.id, len(cart.lines))
        return order

    def list(self) -> list[HeldOrder]:
        return sorted(self._all(), key=lambda o: (o.created_at, o.id))

    def get(self, order_id: str) -> HeldOrder:
        order = self._load(order_id)
        if order is None:
            raise NotFound("Held order not found", details={"held_order_id": order_id})
        return order

    def retrieve(self, order_id: str, resolve_products: ProductResolver | None = None) -> Cart:
        """
        Remove the held order and return it as a live cart.

        The cart is rebuilt before the entry is removed, so a failure while
        resolving products leaves the order parked.
        """
        order = self.get(order_id)
        cart = rebuild_cart(order, resolve_products or get_active_products)
        if not self._remove(order_id):
            # Someone else retrieved or deleted it in the meantime
            raise NotFound("Held order not found", details={"held_order_id": order_id})
        current_app.logger.info("Held order %s retrieved", order_id)
        return cart

    def delete(self, order_id: str) -> None:
        if not self._remove(order_id):
            raise NotFound("Held order not found", details={"held_order_id": order_id})


class InMemoryHeldOrderStore(HeldOrderStore):
    """
    Process-local store (lives as long as the worker).

    Orders are copied in and out so callers never share the stored snapshot.
    """

    def __init__(self):
        self._orders: dict[str, HeldOrder] = {}
        self._lock = threading.Lock()

    def _save(self, order):
        with self._lock:
            self._orders[order.id] = copy.deepcopy(order)

    def _load(self, order_id):
        with self._lock:
            return copy.deepcopy(self._orders.get(order_id))

    def _all(self):
        with self._lock:
            return copy.deepcopy(list(self._orders.values()))

    def _remove(self, order_id):
        with self._lock:
            return self._orders.pop(order_id, None) is not None


class DatabaseHeldOrderStore(HeldOrderStore):
    """Held orders in the held_orders table."""

    @staticmethod
    def _to_order(record: HeldOrderRecord) -> HeldOrder:
        return HeldOrder(
            id=record.id,
            name=record.name,
            created_at=record.created_at,
            snapshot=copy.deepcopy(record.snapshot),
        )

    def _save(self, order):
        db.session.add(
            HeldOrderRecord(
                id=order.id,
                name=order.name,
                snapshot=copy.deepcopy(order.snapshot),
                created_at=order.created_at,
            )
        )
        db.session.commit()

    def _load(self, order_id):
        record = db.session.get(HeldOrderRecord, order_id)
        return self._to_order(record) if record else None

    def _all(self):
        return [self._to_order(r) for r in db.session.query(HeldOrderRecord).all()]

    def _remove(self, order_id):
        deleted = (
            db.session.query(HeldOrderRecord)
            .filter_by(id=order_id)
            .delete(synchronize_session="fetch")
        )
        db.session.commit()
        return deleted == 1


def get_held_order_store() -> HeldOrderStore:
    """Store configured by HELD_ORDER_BACKEND for the current app."""
    backend = current_app.config.get("HELD_ORDER_BACKEND", "database")
    if backend == "memory":
        store = current_app.extensions.get("kiosko.held_orders")
        if store is None:
            store = InMemoryHeldOrderStore()
            current_app.extensions["kiosko.held_orders"] = store
        return store
    if backend == "database":
        return DatabaseHeldOrderStore()
    raise ValueError(f"Unknown HELD_ORDER_BACKEND: {backend}")
