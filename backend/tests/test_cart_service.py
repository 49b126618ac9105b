import pytest

from kiosko.exceptions import InsufficientStock, InvalidQuantity, PosError
from kiosko.services import cart_service


def test_build_cart_accepts_numeric_strings(db_session, make_product):
    p = make_product("Coffee", "2.00", stock=5)
    cart = cart_service.build_cart({"items": [{"product_id": str(p.id), "quantity": "3"}]})

    line = cart.find_line(p.id)
    assert line.quantity == 3
    assert cart_service.quote(cart).total == line.subtotal


@pytest.mark.parametrize("payload", [
    ["not", "an", "object"],
    {"items": "1,2"},
    {"items": ["coffee"]},
    {"items": [None]},
])
def test_build_cart_rejects_malformed_payloads(db_session, payload):
    with pytest.raises(PosError) as exc:
        cart_service.build_cart(payload)
    assert exc.value.status_code == 400


@pytest.mark.parametrize("product_id", [None, "abc", 1.5, True])
def test_build_cart_rejects_bad_product_ids(db_session, product_id):
    with pytest.raises(PosError) as exc:
        cart_service.build_cart({"items": [{"product_id": product_id}]})
    assert exc.value.status_code == 400


@pytest.mark.parametrize("quantity", ["two", "-1", 1.5, 0])
def test_build_cart_rejects_bad_quantities(db_session, make_product, quantity):
    p = make_product(stock=5)
    with pytest.raises(InvalidQuantity):
        cart_service.build_cart({"items": [{"product_id": p.id, "quantity": quantity}]})


def test_unknown_product_has_no_stock(db_session):
    with pytest.raises(InsufficientStock) as exc:
        cart_service.build_cart({"items": [{"product_id": 999, "quantity": 1}]})
    assert exc.value.available == 0
