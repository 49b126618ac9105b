from decimal import Decimal

import pytest

from kiosko.money import change_due, from_cents, percent_of, round_money, to_cents, to_decimal


def test_round_half_up_at_the_cent():
    assert round_money("2.345") == Decimal("2.35")
    assert round_money("2.344") == Decimal("2.34")
    assert round_money("-2.345") == Decimal("-2.35")


def test_floats_do_not_drift():
    assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")
    assert to_cents(19.99) == 1999


def test_to_decimal_rejects_garbage():
    for bad in ("abc", True, [1], "NaN", "Infinity"):
        with pytest.raises(ValueError):
            to_decimal(bad)
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("  ") == Decimal("0")


def test_percent_of_keeps_full_precision():
    # rounding happens once, by the caller
    assert percent_of("0.05", "10") == Decimal("0.005")
    assert round_money(percent_of("0.05", "10")) == Decimal("0.01")


def test_cents_conversions():
    assert to_cents(Decimal("155.50")) == 15550
    assert from_cents(15550) == Decimal("155.50")
    assert from_cents(None) is None
    assert from_cents(-550) == Decimal("-5.50")


def test_change_due():
    assert change_due(Decimal("24.30"), "50") == Decimal("25.70")
    assert change_due("10.00", "10.00") == Decimal("0.00")
