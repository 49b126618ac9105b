"""
Cash Register (drawer session) Service

WHY: Cash accountability per shift. A session opens with a counted float,
collects sales and manual movements while open, and closes with a count
that is compared against the expected cash.

DESIGN PRINCIPLES:
- At most one open session (partial unique index on status='open')
- Sales carry the id of the session open at commit time
- Movements belong to the session open when they are recorded
- Closed sessions are immutable and never reopened
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from .. import reconciliation
from ..exceptions import AlreadyClosed, AlreadyOpen, InvalidAmount, InvalidMovementType, NotFound, NotOpen
from ..extensions import db
from ..models import CashMovement, CashRegisterSession, Sale
from ..money import ZERO, from_cents, to_cents, to_decimal
from ..time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry

STATUS_OPEN = "open"
STATUS_CLOSED = "closed"


@dataclass(frozen=True)
class SalesTotals:
    cash_sales: Decimal = ZERO
    card_sales: Decimal = ZERO
    transfer_sales: Decimal = ZERO
    total_sales: Decimal = ZERO
    sales_count: int = 0

    def to_dict(self) -> dict:
        return {
            "cash_sales_cents": to_cents(self.cash_sales),
            "card_sales_cents": to_cents(self.card_sales),
            "transfer_sales_cents": to_cents(self.transfer_sales),
            "total_sales_cents": to_cents(self.total_sales),
            "sales_count": self.sales_count,
        }


def _parse_amount(value, field: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise InvalidAmount(f"{field} must be a number")


# =============================================================================
# SESSION REPOSITORY
# =============================================================================

def get_open_session() -> CashRegisterSession | None:
    """The currently open session, if any."""
    return (
        db.session.query(CashRegisterSession)
        .filter_by(status=STATUS_OPEN)
        .order_by(CashRegisterSession.opened_at.desc())
        .first()
    )


def get_session(session_id: int) -> CashRegisterSession:
    session = db.session.get(CashRegisterSession, session_id)
    if not session:
        raise NotFound("Cash register session not found", details={"session_id": session_id})
    return session


def list_movements(session_id: int) -> list[CashMovement]:
    """Movements recorded against a session, newest first."""
    return (
        db.session.query(CashMovement)
        .filter_by(cash_register_session_id=session_id)
        .order_by(CashMovement.created_at.desc(), CashMovement.id.desc())
        .all()
    )


def sales_totals(session_id: int) -> SalesTotals:
    """Per-method sale sums for a session (recomputed on demand)."""
    row = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.coalesce(func.sum(case((Sale.payment_method == "cash", Sale.total_cents), else_=0)), 0),
            func.coalesce(func.sum(case((Sale.payment_method == "card", Sale.total_cents), else_=0)), 0),
            func.coalesce(func.sum(case((Sale.payment_method == "transfer", Sale.total_cents), else_=0)), 0),
        )
        .filter(Sale.cash_register_session_id == session_id)
        .one()
    )
    count, total, cash, card, transfer = row
    return SalesTotals(
        cash_sales=from_cents(cash),
        card_sales=from_cents(card),
        transfer_sales=from_cents(transfer),
        total_sales=from_cents(total),
        sales_count=int(count),
    )


def get_register_sales(session_id: int) -> list[Sale]:
    """Sales attributed to a session, newest first."""
    get_session(session_id)
    return (
        db.session.query(Sale)
        .filter_by(cash_register_session_id=session_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def summarize_session(session: CashRegisterSession) -> dict:
    """
    Session row plus live aggregates.

    For an open session expected cash is what the drawer should hold right
    now; for a closed one the frozen close-time figures are reported.
    """
    totals = sales_totals(session.id)
    movements = list_movements(session.id)
    income, expense = reconciliation.movement_totals(movements, session.opened_at, session.closed_at)

    data = session.to_dict()
    data.update(totals.to_dict())
    data["income_cents"] = to_cents(income)
    data["expense_cents"] = to_cents(expense)
    if session.is_open:
        expected = reconciliation.expected_cash(
            session.opening_amount,
            totals.cash_sales,
            movements,
            opened_at=session.opened_at,
        )
        data["expected_amount_cents"] = to_cents(expected)
    else:
        data["discrepancy"] = reconciliation.discrepancy(
            from_cents(session.expected_amount_cents),
            from_cents(session.closing_amount_cents),
        ).to_dict()
    return data


# =============================================================================
# STATE MACHINE
# =============================================================================

def open_register(opening_amount, notes: str | None = None) -> CashRegisterSession:
    """
    Open a new drawer session.

    Raises:
        InvalidAmount: negative or non-numeric opening amount
        AlreadyOpen: another session is open
    """
    amount = _parse_amount(opening_amount, "opening_amount")
    if amount < 0:
        raise InvalidAmount("Opening amount cannot be negative")

    def _op() -> CashRegisterSession:
        begin_immediate()
        existing = get_open_session()
        if existing:
            raise AlreadyOpen(
                f"A cash register session is already open (session {existing.id})",
                details={"session_id": existing.id},
            )

        session = CashRegisterSession(
            status=STATUS_OPEN,
            opening_amount_cents=to_cents(amount),
            opened_at=utcnow(),
            notes=notes,
        )
        db.session.add(session)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race against another front end; the index is the authority
            db.session.rollback()
            raise AlreadyOpen("A cash register session is already open")
        db.session.commit()
        return session

    session = run_with_retry(_op)
    current_app.logger.info(
        "Cash register session %s opened with %s cents", session.id, session.opening_amount_cents
    )
    return session


def add_movement(movement_type: str, amount, description: str | None = None) -> CashMovement:
    """
    Record a manual income/expense against the open session.

    Raises:
        InvalidMovementType, InvalidAmount (amount <= 0), NotOpen
    """
    if movement_type not in reconciliation.MOVEMENT_TYPES:
        raise InvalidMovementType(
            f"Movement type must be one of {', '.join(reconciliation.MOVEMENT_TYPES)}",
            details={"type": movement_type},
        )
    value = _parse_amount(amount, "amount")
    if to_cents(value) <= 0:
        raise InvalidAmount("Movement amount must be greater than zero")

    def _op() -> CashMovement:
        begin_immediate()
        session = lock_for_update(
            db.session.query(CashRegisterSession).filter_by(status=STATUS_OPEN)
        ).first()
        if not session:
            raise NotOpen("No cash register session is open")

        movement = CashMovement(
            cash_register_session_id=session.id,
            type=movement_type,
            amount_cents=to_cents(value),
            description=description,
            created_at=utcnow(),
        )
        db.session.add(movement)
        db.session.commit()
        return movement

    return run_with_retry(_op)


def close_register(counted_amount, notes: str | None = None, session_id: int | None = None) -> CashRegisterSession:
    """
    Count the drawer and close the session.

    Without session_id the open session is closed. With session_id that
    specific session is targeted, so a repeated close reports AlreadyClosed
    and leaves the first close's figures alone.

    IMMUTABLE: Once closed, session cannot be reopened or modified.

    Raises:
        InvalidAmount, NotOpen, NotFound, AlreadyClosed
    """
    counted = _parse_amount(counted_amount, "counted_amount")
    if counted < 0:
        raise InvalidAmount("Counted amount cannot be negative")

    def _op() -> CashRegisterSession:
        begin_immediate()
        if session_id is None:
            session = lock_for_update(
                db.session.query(CashRegisterSession).filter_by(status=STATUS_OPEN)
            ).populate_existing().first()
            if not session:
                raise NotOpen("No cash register session is open")
        else:
            session = lock_for_update(
                db.session.query(CashRegisterSession).filter_by(id=session_id)
            ).populate_existing().first()
            if not session:
                raise NotFound("Cash register session not found", details={"session_id": session_id})
            if session.status != STATUS_OPEN:
                raise AlreadyClosed(
                    f"Cash register session {session.id} is already closed",
                    details={"session_id": session.id},
                )

        closed_at = utcnow()
        totals = sales_totals(session.id)
        movements = list_movements(session.id)
        expected = reconciliation.expected_cash(
            session.opening_amount,
            totals.cash_sales,
            movements,
            opened_at=session.opened_at,
            closed_at=closed_at,
        )
        result = reconciliation.discrepancy(expected, counted)

        session.status = STATUS_CLOSED
        session.closed_at = closed_at
        session.closing_amount_cents = to_cents(counted)
        session.expected_amount_cents = to_cents(expected)
        session.difference_cents = to_cents(result.amount)
        session.closing_notes = notes

        db.session.commit()
        return session

    session = run_with_retry(_op)
    current_app.logger.info(
        "Cash register session %s closed: expected=%s counted=%s difference=%s",
        session.id,
        session.expected_amount_cents,
        session.closing_amount_cents,
        session.difference_cents,
    )
    return session


# =============================================================================
# REPORTING
# =============================================================================

def get_current_register() -> dict | None:
    """Open session with live aggregates, or None when the drawer is closed."""
    session = get_open_session()
    if not session:
        return None
    return summarize_session(session)


def get_register_history(limit: int = 30) -> list[dict]:
    sessions = (
        db.session.query(CashRegisterSession)
        .order_by(CashRegisterSession.opened_at.desc(), CashRegisterSession.id.desc())
        .limit(limit)
        .all()
    )
    return [summarize_session(s) for s in sessions]


def get_register_stats() -> dict:
    """Aggregate close results over all closed sessions."""
    count, total_closing, avg_difference, surplus, shortage = (
        db.session.query(
            func.count(CashRegisterSession.id),
            func.coalesce(func.sum(CashRegisterSession.closing_amount_cents), 0),
            func.coalesce(func.avg(CashRegisterSession.difference_cents), 0),
            func.coalesce(func.sum(case((CashRegisterSession.difference_cents > 0, 1), else_=0)), 0),
            func.coalesce(func.sum(case((CashRegisterSession.difference_cents < 0, 1), else_=0)), 0),
        )
        .filter(CashRegisterSession.status == STATUS_CLOSED)
        .one()
    )
    return {
        "closed_sessions": int(count),
        "total_closing_cents": int(total_closing),
        "average_difference_cents": int(round(float(avg_difference))),
        "sessions_with_surplus": int(surplus),
        "sessions_with_shortage": int(shortage),
    }
