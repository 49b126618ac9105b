"""
Fixed-precision currency helpers.

Amounts travel through the domain as Decimal and are stored as integer
cents. Rounding is round-half-up to the minor unit and happens only when a
value is persisted or displayed; sums and percentages are carried at full
precision until then.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """
    Coerce user/store input to Decimal without binary float drift.

    - None / "" -> 0
    - floats go through str() so 0.1 stays 0.1
    - bool is rejected (it is an int subclass, never a price)
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return ZERO
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValueError(f"invalid amount: {value!r}")
    else:
        raise ValueError(f"invalid amount: {value!r}")

    if not result.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return result


def round_money(value) -> Decimal:
    """Round to the minor unit (2 places), half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount, pct) -> Decimal:
    """amount * pct / 100 at full precision (caller rounds once at the end)."""
    return to_decimal(amount) * to_decimal(pct) / HUNDRED


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if value < low:
        return low
    if value > high:
        return high
    return value


def to_cents(value) -> int:
    """Decimal amount -> integer cents for storage."""
    return int(round_money(value) * HUNDRED)


def from_cents(cents: int | None) -> Decimal | None:
    """Integer cents -> Decimal amount with 2 places."""
    if cents is None:
        return None
    return (Decimal(int(cents)) / HUNDRED).quantize(CENT)


def change_due(total, received) -> Decimal:
    """Change to hand back for a cash tender. Informational only, never stored."""
    return round_money(to_decimal(received) - to_decimal(total))
