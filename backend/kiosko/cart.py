"""
In-progress order (cart) and its pricing.

The cart is a plain value object: a thin mutation API plus `totals()`,
a pure function of the lines, the global discount and a tax rate. It can be
recomputed on every keystroke of the front end without touching the store.

PRICING (2 decimal places, half-up, rounded once per percent application):
    subtotal        = sum(unit_price * quantity - line discount)
    discount_amount = percent ? subtotal * pct / 100 : fixed, clamped to [0, subtotal]
    taxable         = subtotal - discount_amount
    tax_amount      = taxable * tax_rate / 100
    total           = taxable + tax_amount
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from decimal import Decimal

from .exceptions import InsufficientStock, InvalidAmount, InvalidQuantity, NotFound
from .money import ZERO, clamp, percent_of, round_money, to_cents, to_decimal

DISCOUNT_PERCENT = "percent"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENT, DISCOUNT_FIXED)


@dataclass(frozen=True)
class ProductRef:
    """Catalog data a cart needs from a product (duck-typed with models.Product)."""
    id: int
    name: str
    price: Decimal
    stock: int


@dataclass
class LineItem:
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    discount: Decimal = ZERO
    # Last-known stock when the line was added/refreshed
    stock_snapshot: int | None = None

    @property
    def gross(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def subtotal(self) -> Decimal:
        return self.gross - clamp(self.discount, ZERO, self.gross)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "discount": str(self.discount),
            "stock_snapshot": self.stock_snapshot,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return cls(
            product_id=data["product_id"],
            product_name=data["product_name"],
            unit_price=round_money(data["unit_price"]),
            quantity=int(data["quantity"]),
            discount=round_money(data.get("discount")),
            stock_snapshot=data.get("stock_snapshot"),
        )


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount_amount: Decimal
    taxable: Decimal
    tax_amount: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": to_cents(self.subtotal),
            "discount_cents": to_cents(self.discount_amount),
            "taxable_cents": to_cents(self.taxable),
            "tax_cents": to_cents(self.tax_amount),
            "total_cents": to_cents(self.total),
        }


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("Quantity must be a whole number")
    return quantity


@dataclass
class Cart:
    lines: list[LineItem] = field(default_factory=list)
    discount_type: str | None = None
    discount_value: Decimal = ZERO
    customer_name: str | None = None
    notes: str | None = None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def find_line(self, product_id) -> LineItem | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product, quantity: int = 1) -> LineItem:
        """
        Add `quantity` units of `product`, merging into its existing line.

        Raises InsufficientStock when the resulting line quantity exceeds
        the product's current stock snapshot.
        """
        quantity = _validate_quantity(quantity)
        if quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than zero")

        line = self.find_line(product.id)
        new_qty = quantity + (line.quantity if line else 0)
        if new_qty > product.stock:
            raise InsufficientStock(product.id, product.name, new_qty, product.stock)

        if line:
            line.quantity = new_qty
            line.stock_snapshot = product.stock
            return line

        line = LineItem(
            product_id=product.id,
            product_name=product.name,
            unit_price=round_money(product.price),
            quantity=quantity,
            stock_snapshot=product.stock,
        )
        self.lines.append(line)
        return line

    def update_quantity(self, product_id, quantity: int) -> LineItem | None:
        """Set a line's quantity; zero or less removes the line."""
        quantity = _validate_quantity(quantity)
        line = self.find_line(product_id)
        if line is None:
            raise NotFound(f"Product {product_id} is not in the cart")

        if quantity <= 0:
            self.lines.remove(line)
            return None

        if line.stock_snapshot is not None and quantity > line.stock_snapshot:
            raise InsufficientStock(product_id, line.product_name, quantity, line.stock_snapshot)

        line.quantity = quantity
        return line

    def remove_item(self, product_id) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def set_line_discount(self, product_id, amount) -> LineItem:
        line = self.find_line(product_id)
        if line is None:
            raise NotFound(f"Product {product_id} is not in the cart")
        try:
            value = round_money(amount)
        except ValueError as exc:
            raise InvalidAmount(str(exc))
        if value < 0:
            raise InvalidAmount("Line discount cannot be negative")
        line.discount = value
        return line

    def set_discount(self, value, discount_type: str | None) -> None:
        """Select a percent or fixed global discount (replaces any previous one)."""
        if discount_type is None:
            self.discount_type = None
            self.discount_value = ZERO
            return

        if discount_type not in DISCOUNT_TYPES:
            raise InvalidAmount(f"Unknown discount type: {discount_type}")

        try:
            amount = to_decimal(value)
        except ValueError as exc:
            raise InvalidAmount(str(exc))
        if amount < 0:
            raise InvalidAmount("Discount cannot be negative")

        self.discount_type = discount_type
        self.discount_value = amount

    def clear(self) -> None:
        self.lines = []
        self.discount_type = None
        self.discount_value = ZERO
        self.customer_name = None
        self.notes = None

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def items_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def discount_percent(self) -> Decimal | None:
        if self.discount_type == DISCOUNT_PERCENT:
            return self.discount_value
        return None

    def totals(self, tax_rate=ZERO) -> CartTotals:
        subtotal = round_money(sum((line.subtotal for line in self.lines), ZERO))

        if self.discount_type == DISCOUNT_PERCENT:
            raw_discount = percent_of(subtotal, self.discount_value)
        elif self.discount_type == DISCOUNT_FIXED:
            raw_discount = self.discount_value
        else:
            raw_discount = ZERO
        discount_amount = round_money(clamp(raw_discount, ZERO, subtotal))

        taxable = subtotal - discount_amount

        rate = to_decimal(tax_rate)
        if rate < 0:
            rate = ZERO
        tax_amount = round_money(percent_of(taxable, rate))

        return CartTotals(
            subtotal=subtotal,
            discount_amount=discount_amount,
            taxable=taxable,
            tax_amount=tax_amount,
            total=taxable + tax_amount,
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def copy(self) -> "Cart":
        return copy.deepcopy(self)

    def snapshot(self) -> dict:
        """JSON-safe deep copy of the cart."""
        return {
            "lines": [line.to_dict() for line in self.lines],
            "discount_type": self.discount_type,
            "discount_value": str(self.discount_value),
            "customer_name": self.customer_name,
            "notes": self.notes,
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> "Cart":
        return cls(
            lines=[LineItem.from_dict(line) for line in data.get("lines", [])],
            discount_type=data.get("discount_type"),
            discount_value=to_decimal(data.get("discount_value")),
            customer_name=data.get("customer_name"),
            notes=data.get("notes"),
        )
