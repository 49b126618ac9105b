"""
Cash drawer reconciliation.

    expected = opening + cash sales + income movements - expense movements
    difference = counted - expected

Movements are attributed to a session by the half-open window
[opened_at, closed_at). A movement stamped at or after closed_at belongs to
whatever comes next, never to the session being closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .money import ZERO, round_money, to_cents, to_decimal
from .time_utils import as_naive_utc

MOVEMENT_INCOME = "income"
MOVEMENT_EXPENSE = "expense"
MOVEMENT_TYPES = (MOVEMENT_INCOME, MOVEMENT_EXPENSE)

OVER = "over"
SHORT = "short"
EXACT = "exact"

# Differences smaller than half a cent are rounding noise
EXACT_EPSILON = Decimal("0.005")


@dataclass(frozen=True)
class Discrepancy:
    amount: Decimal
    sign: str

    def to_dict(self) -> dict:
        return {"amount_cents": to_cents(self.amount), "sign": self.sign}


def in_window(ts: datetime, opened_at: datetime | None, closed_at: datetime | None) -> bool:
    ts, opened_at, closed_at = as_naive_utc(ts), as_naive_utc(opened_at), as_naive_utc(closed_at)
    if opened_at is not None and ts < opened_at:
        return False
    if closed_at is not None and ts >= closed_at:
        return False
    return True


def movement_totals(movements, opened_at=None, closed_at=None) -> tuple[Decimal, Decimal]:
    """
    Sum income and expense movements inside the session window.

    Each movement needs `type`, `amount` and `created_at`. Any type other
    than income/expense is a programming error, not something to skip.
    """
    income = ZERO
    expense = ZERO
    for movement in movements:
        if not in_window(movement.created_at, opened_at, closed_at):
            continue
        if movement.type == MOVEMENT_INCOME:
            income += to_decimal(movement.amount)
        elif movement.type == MOVEMENT_EXPENSE:
            expense += to_decimal(movement.amount)
        else:
            raise ValueError(f"Unknown cash movement type: {movement.type!r}")
    return income, expense


def expected_cash(opening_amount, cash_sales, movements, *, opened_at=None, closed_at=None) -> Decimal:
    income, expense = movement_totals(movements, opened_at, closed_at)
    return round_money(to_decimal(opening_amount) + to_decimal(cash_sales) + income - expense)


def discrepancy(expected, counted) -> Discrepancy:
    amount = to_decimal(counted) - to_decimal(expected)
    if abs(amount) < EXACT_EPSILON:
        return Discrepancy(amount=ZERO.quantize(Decimal("0.01")), sign=EXACT)
    return Discrepancy(amount=round_money(amount), sign=OVER if amount > 0 else SHORT)
