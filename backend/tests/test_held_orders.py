from decimal import Decimal

import pytest

from kiosko.cart import DISCOUNT_PERCENT, Cart
from kiosko.exceptions import NotFound
from kiosko.models import Product
from kiosko.services.held_order_service import (
    DatabaseHeldOrderStore,
    InMemoryHeldOrderStore,
    get_held_order_store,
)


@pytest.fixture(params=["memory", "database"])
def store(request, db_session):
    if request.param == "memory":
        return InMemoryHeldOrderStore()
    return DatabaseHeldOrderStore()


@pytest.fixture
def cart(make_product):
    coffee = make_product("Coffee", "10.00", stock=5)
    bread = make_product("Bread", "5.00", stock=3)
    cart = Cart(customer_name="Ana", notes="no sugar")
    cart.add_item(coffee, 2)
    cart.add_item(bread, 1)
    cart.set_discount("10", DISCOUNT_PERCENT)
    return cart


def test_hold_and_retrieve_restores_cart(store, cart):
    order = store.hold(cart, name="Table 4")
    assert order.name == "Table 4"

    restored = store.retrieve(order.id)

    assert [(l.product_name, l.quantity) for l in restored.lines] == [("Coffee", 2), ("Bread", 1)]
    assert restored.discount_type == DISCOUNT_PERCENT
    assert restored.discount_value == Decimal("10")
    assert restored.customer_name == "Ana"
    assert restored.notes == "no sugar"
    assert restored.totals().total == cart.totals().total


def test_retrieve_is_at_most_once(store, cart):
    order = store.hold(cart)
    store.retrieve(order.id)

    with pytest.raises(NotFound):
        store.retrieve(order.id)
    assert store.list() == []


def test_held_snapshot_is_independent_of_live_cart(store, cart):
    order = store.hold(cart)
    cart.clear()
    cart.customer_name = "Someone else"

    restored = store.retrieve(order.id)
    assert len(restored.lines) == 2
    assert restored.customer_name == "Ana"


def test_default_name_and_listing(store, cart):
    first = store.hold(cart)
    second = store.hold(cart, name="  ")

    assert first.name.startswith("Held order ")
    assert second.name.startswith("Held order ")
    assert [o.id for o in store.list()] == [first.id, second.id]
    assert store.get(first.id).snapshot == first.snapshot


def test_delete(store, cart):
    order = store.hold(cart)
    store.delete(order.id)

    with pytest.raises(NotFound):
        store.delete(order.id)
    with pytest.raises(NotFound):
        store.get(order.id)


def test_retrieve_drops_deleted_and_deactivated_products(store, cart, db_session):
    order = store.hold(cart)
    bread = db_session.query(Product).filter_by(name="Bread").one()
    bread.is_active = False
    db_session.commit()

    restored = store.retrieve(order.id)
    assert [l.product_name for l in restored.lines] == ["Coffee"]


def test_retrieve_refreshes_price_and_stock(store, cart, db_session):
    order = store.hold(cart)
    coffee = db_session.query(Product).filter_by(name="Coffee").one()
    coffee.price_cents = 1200
    coffee.stock = 1
    db_session.commit()

    line = store.retrieve(order.id).find_line(coffee.id)
    assert line.unit_price == Decimal("12.00")
    assert line.quantity == 2
    assert line.stock_snapshot == 1


def test_failed_rebuild_leaves_order_parked(store, cart):
    order = store.hold(cart)

    def broken(ids):
        raise RuntimeError("catalog unavailable")

    with pytest.raises(RuntimeError):
        store.retrieve(order.id, resolve_products=broken)
    assert store.get(order.id).id == order.id


def test_store_follows_config(app, db_session, monkeypatch):
    assert isinstance(get_held_order_store(), DatabaseHeldOrderStore)

    monkeypatch.setitem(app.config, "HELD_ORDER_BACKEND", "memory")
    memory = get_held_order_store()
    assert isinstance(memory, InMemoryHeldOrderStore)
    assert get_held_order_store() is memory


def test_returned_orders_do_not_share_stored_snapshot(store, cart):
    order = store.hold(cart)
    order.snapshot["lines"].clear()
    store.get(order.id).snapshot["lines"].clear()
    store.list()[0].snapshot["customer_name"] = "Changed"

    restored = store.retrieve(order.id)
    assert len(restored.lines) == 2
    assert restored.customer_name == "Ana"
