# Overview: Builds carts from request payloads against the live catalog.

from __future__ import annotations

from ..cart import Cart, CartTotals
from ..exceptions import InsufficientStock, InvalidQuantity, PosError
from . import settings_service
from .inventory_service import get_active_products


def _whole_number(value):
    """int, or a string of digits, as int; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def build_cart(data: dict) -> Cart:
    """
    Cart from a JSON payload:

    {
        "items": [{"product_id": 1, "quantity": 2, "discount": "0.50"}],
        "discount_type": "percent" | "fixed" | null,
        "discount_value": "10",
        "customer_name": "...",
        "notes": "..."
    }

    Each line goes through Cart.add_item, so the add-time stock check applies.
    Unknown or inactive products are reported as having no stock.
    """
    if not isinstance(data, dict):
        raise PosError("Request body must be a JSON object")
    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise PosError("items must be a list of objects")

    lines = []
    for item in items:
        product_id = _whole_number(item.get("product_id"))
        if product_id is None:
            raise PosError("product_id must be an integer", details={"product_id": item.get("product_id")})
        quantity = _whole_number(item.get("quantity", 1))
        if quantity is None:
            raise InvalidQuantity("Quantity must be a whole number", details={"product_id": product_id})
        lines.append((product_id, quantity, item))

    products = get_active_products([product_id for product_id, _, _ in lines])

    cart = Cart()
    for product_id, quantity, item in lines:
        product = products.get(product_id)
        if product is None:
            raise InsufficientStock(product_id, None, quantity, 0)
        cart.add_item(product, quantity)

        if item.get("discount") not in (None, "", 0, "0"):
            cart.set_line_discount(product_id, item["discount"])

    if data.get("discount_type"):
        cart.set_discount(data.get("discount_value"), data["discount_type"])

    cart.customer_name = data.get("customer_name") or None
    cart.notes = data.get("notes") or None
    return cart


def quote(cart: Cart) -> CartTotals:
    """Totals with the configured tax rate, without committing anything."""
    return cart.totals(settings_service.get_tax_rate())
