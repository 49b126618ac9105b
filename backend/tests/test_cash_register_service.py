import pytest
from sqlalchemy.exc import IntegrityError

from kiosko.cart import Cart
from kiosko.exceptions import AlreadyClosed, AlreadyOpen, InvalidAmount, InvalidMovementType, NotFound, NotOpen
from kiosko.models import CashRegisterSession
from kiosko.services import cash_register_service, sales_service
from kiosko.time_utils import utcnow


def _sell(product, method, qty=1):
    cart = Cart()
    cart.add_item(product, qty)
    return sales_service.commit_sale(cart, method)


def test_open_register(db_session):
    session = cash_register_service.open_register("100.00", notes="morning")

    assert session.is_open
    assert session.opening_amount_cents == 10000
    assert cash_register_service.get_open_session().id == session.id


def test_only_one_session_can_be_open(db_session):
    first = cash_register_service.open_register("100")
    with pytest.raises(AlreadyOpen) as exc:
        cash_register_service.open_register("50")
    assert exc.value.details["session_id"] == first.id
    assert db_session.query(CashRegisterSession).count() == 1


def test_partial_unique_index_rejects_second_open_row(db_session):
    now = utcnow()
    db_session.add(CashRegisterSession(status="open", opening_amount_cents=0, opened_at=now))
    db_session.commit()
    db_session.add(CashRegisterSession(status="open", opening_amount_cents=0, opened_at=now))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_negative_opening_amount_is_rejected(db_session):
    with pytest.raises(InvalidAmount):
        cash_register_service.open_register("-1")
    assert cash_register_service.get_open_session() is None


def test_movement_validation(db_session):
    with pytest.raises(NotOpen):
        cash_register_service.add_movement("income", "10")

    cash_register_service.open_register("0")
    with pytest.raises(InvalidMovementType):
        cash_register_service.add_movement("refund", "10")
    with pytest.raises(InvalidAmount):
        cash_register_service.add_movement("expense", "0")
    with pytest.raises(InvalidAmount):
        cash_register_service.add_movement("expense", "-3")


def test_close_reconciles_reference_shift(db_session, make_product):
    lunch = make_product("Lunch", "45.50", stock=5)
    gadget = make_product("Gadget", "30.00", stock=5)

    session = cash_register_service.open_register("100.00")
    _sell(lunch, "cash")
    _sell(gadget, "card")
    cash_register_service.add_movement("income", "20.00", "change top-up")
    cash_register_service.add_movement("expense", "10.00", "supplies")

    closed = cash_register_service.close_register("150.00", session_id=session.id)

    assert closed.status == "closed"
    assert closed.closed_at is not None
    assert closed.expected_amount_cents == 15550
    assert closed.closing_amount_cents == 15000
    assert closed.difference_cents == -550

    summary = cash_register_service.summarize_session(closed)
    assert summary["cash_sales_cents"] == 4550
    assert summary["card_sales_cents"] == 3000
    assert summary["total_sales_cents"] == 7550
    assert summary["sales_count"] == 2
    assert summary["income_cents"] == 2000
    assert summary["expense_cents"] == 1000
    assert summary["discrepancy"] == {"amount_cents": -550, "sign": "short"}


def test_exact_count_has_zero_difference(db_session):
    session = cash_register_service.open_register("80")
    closed = cash_register_service.close_register("80.00", session_id=session.id)
    assert closed.difference_cents == 0


def test_closing_twice_is_rejected_and_keeps_first_result(db_session):
    session = cash_register_service.open_register("100")
    first = cash_register_service.close_register("120", session_id=session.id)
    closed_at = first.closed_at

    with pytest.raises(AlreadyClosed):
        cash_register_service.close_register("90", session_id=session.id)
    with pytest.raises(NotOpen):
        cash_register_service.close_register("90")

    reloaded = cash_register_service.get_session(session.id)
    db_session.refresh(reloaded)
    assert reloaded.closing_amount_cents == 12000
    assert reloaded.difference_cents == 2000
    assert reloaded.closed_at == closed_at


def test_close_unknown_session(db_session):
    with pytest.raises(NotFound):
        cash_register_service.close_register("10", session_id=999)


def test_sales_outside_session_do_not_count(db_session, make_product):
    p = make_product("Tea", "4.00", stock=10)
    _sell(p, "cash")
    first = cash_register_service.open_register("10")
    _sell(p, "cash")
    cash_register_service.close_register("14", session_id=first.id)
    _sell(p, "cash")
    second = cash_register_service.open_register("14")
    _sell(p, "cash", qty=2)

    assert cash_register_service.sales_totals(first.id).to_dict()["cash_sales_cents"] == 400
    assert cash_register_service.sales_totals(second.id).to_dict()["cash_sales_cents"] == 800
    assert len(cash_register_service.get_register_sales(second.id)) == 1


def test_current_register_has_live_aggregates(db_session, make_product):
    assert cash_register_service.get_current_register() is None

    p = make_product("Book", "12.00", stock=10)
    cash_register_service.open_register("50")
    _sell(p, "cash")
    _sell(p, "transfer")
    cash_register_service.add_movement("expense", "2.00")

    current = cash_register_service.get_current_register()
    assert current["status"] == "open"
    assert current["cash_sales_cents"] == 1200
    assert current["transfer_sales_cents"] == 1200
    assert current["expected_amount_cents"] == 6000


def test_history_and_stats(db_session):
    a = cash_register_service.open_register("100")
    cash_register_service.close_register("110", session_id=a.id)
    b = cash_register_service.open_register("100")
    cash_register_service.close_register("96", session_id=b.id)
    cash_register_service.open_register("100")

    history = cash_register_service.get_register_history()
    assert [h["status"] for h in history] == ["open", "closed", "closed"]

    stats = cash_register_service.get_register_stats()
    assert stats["closed_sessions"] == 2
    assert stats["total_closing_cents"] == 20600
    assert stats["average_difference_cents"] == 300
    assert stats["sessions_with_surplus"] == 1
    assert stats["sessions_with_shortage"] == 1


def test_list_movements_newest_first(db_session):
    session = cash_register_service.open_register("0")
    cash_register_service.add_movement("income", "5", "first")
    cash_register_service.add_movement("expense", "1", "second")

    movements = cash_register_service.list_movements(session.id)
    assert [m.description for m in movements] == ["second", "first"]


def test_closing_notes_are_kept_apart_from_opening_notes(db_session):
    session = cash_register_service.open_register("40", notes="float from safe")
    closed = cash_register_service.close_register("40", notes="all counted", session_id=session.id)

    assert closed.notes == "float from safe"
    assert closed.closing_notes == "all counted"
    summary = cash_register_service.summarize_session(closed)
    assert summary["closing_notes"] == "all counted"
    assert summary["discrepancy"]["sign"] == "exact"
