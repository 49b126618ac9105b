from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from kiosko.reconciliation import EXACT, OVER, SHORT, discrepancy, expected_cash, movement_totals

OPENED = datetime(2026, 10, 18, 8, 0, 0)
CLOSED = datetime(2026, 10, 18, 20, 0, 0)


def mv(kind, amount, at):
    return SimpleNamespace(type=kind, amount=Decimal(amount), created_at=at)


def test_reference_shift():
    movements = [
        mv("income", "20.00", OPENED + timedelta(hours=1)),
        mv("expense", "10.00", OPENED + timedelta(hours=2)),
    ]
    expected = expected_cash(Decimal("100.00"), Decimal("45.50"), movements, opened_at=OPENED, closed_at=CLOSED)
    assert expected == Decimal("155.50")

    result = discrepancy(expected, Decimal("150.00"))
    assert result.amount == Decimal("-5.50")
    assert result.sign == SHORT


def test_window_is_half_open():
    movements = [
        mv("income", "1.00", OPENED),
        mv("income", "2.00", CLOSED),
        mv("expense", "4.00", OPENED - timedelta(seconds=1)),
    ]
    income, expense = movement_totals(movements, OPENED, CLOSED)
    assert income == Decimal("1.00")
    assert expense == Decimal("0")


def test_open_session_has_no_upper_bound():
    movements = [mv("income", "2.00", CLOSED + timedelta(days=1))]
    assert expected_cash("0", "0", movements, opened_at=OPENED) == Decimal("2.00")


def test_unknown_movement_type_is_an_error():
    with pytest.raises(ValueError):
        movement_totals([mv("adjustment", "1.00", OPENED)], OPENED, CLOSED)


@pytest.mark.parametrize("expected,counted,sign,amount", [
    ("100.00", "100.00", EXACT, "0.00"),
    ("100.00", "100.004", EXACT, "0.00"),
    ("100.00", "99.996", EXACT, "0.00"),
    ("100.00", "100.01", OVER, "0.01"),
    ("100.00", "99.99", SHORT, "-0.01"),
])
def test_discrepancy_sign(expected, counted, sign, amount):
    result = discrepancy(Decimal(expected), Decimal(counted))
    assert result.sign == sign
    assert result.amount == Decimal(amount)
