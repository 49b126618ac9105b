import pytest
from sqlalchemy.exc import OperationalError

from kiosko.cart import Cart
from kiosko.exceptions import CommitFailure
from kiosko.extensions import db
from kiosko.models import Sale, Setting
from kiosko.services import inventory_service, sales_service
from kiosko.services.concurrency import PendingWritesError, run_with_retry


def _locked():
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


def test_exhausted_retries_raise_commit_failure(db_session):
    calls = []

    def op():
        calls.append(1)
        db.session.add(Setting(key="retry.partial", value=1))
        db.session.flush()
        raise _locked()

    with pytest.raises(CommitFailure) as exc:
        run_with_retry(op, attempts=3, backoff_base=0)

    assert len(calls) == 3
    assert exc.value.status_code == 503
    assert exc.value.details == {"reason": "OperationalError", "attempts": 3}
    assert db_session.get(Setting, "retry.partial") is None


def test_transient_conflict_is_retried(db_session, caplog):
    calls = []

    def op():
        calls.append(1)
        if len(calls) == 1:
            raise _locked()
        db.session.add(Setting(key="retry.ok", value=True))
        db.session.commit()
        return "done"

    assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
    assert len(calls) == 2
    assert db_session.get(Setting, "retry.ok").value is True
    assert "retrying attempt 2/3" in caplog.text


def test_other_errors_are_not_retried(db_session):
    calls = []

    def op():
        calls.append(1)
        raise KeyError("boom")

    with pytest.raises(KeyError):
        run_with_retry(op, attempts=3, backoff_base=0)
    assert len(calls) == 1


@pytest.mark.parametrize("flush", [False, True])
def test_pending_writes_are_kept(db_session, make_product, flush):
    p = make_product(stock=2)
    cart = Cart()
    cart.add_item(p, 1)

    db_session.add(Setting(key="x.pending", value="keep me"))
    if flush:
        db_session.flush()

    with pytest.raises(PendingWritesError):
        sales_service.commit_sale(cart, "cash")

    assert db_session.query(Setting).filter_by(key="x.pending").one().value == "keep me"
    assert db_session.query(Sale).count() == 0
    assert inventory_service.get_stock(p.id) == 2

    db_session.commit()
    sales_service.commit_sale(cart, "cash")
    assert db_session.query(Setting).filter_by(key="x.pending").one().value == "keep me"
    assert inventory_service.get_stock(p.id) == 1
