# Overview: Transaction helpers shared by the commit and drawer services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..exceptions import CommitFailure
from ..extensions import db


class PendingWritesError(RuntimeError):
    """The session holds uncommitted writes from outside the retried operation."""


def has_pending_writes() -> bool:
    """
    True when the session carries work of its own: unflushed objects, or
    flushed statements the database has not committed yet.
    """
    session = db.session
    if session.new or session.dirty or session.deleted:
        return True
    if db.engine.dialect.name == "sqlite" and db.session().in_transaction():
        # pysqlite only opens a DBAPI transaction once a write was sent
        return bool(session.connection().connection.dbapi_connection.in_transaction)
    return False


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_immediate() covers it there.
    """
    return query.with_for_update()


def begin_immediate():
    """
    Take SQLite's write lock up front so read-check-write sequences serialize.

    No-op on other dialects (row locks + conditional updates do the job).
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates untouched. Exhausted retries raise CommitFailure.

    Raises PendingWritesError before touching the session if it already
    holds uncommitted writes.
    """
    if attempts is None:
        attempts = current_app.config.get("COMMIT_RETRY_ATTEMPTS", 3)
    if has_pending_writes():
        # A rollback between attempts would throw this work away
        raise PendingWritesError("Commit or roll back pending changes before starting this operation")

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise CommitFailure(
                    "The transaction could not be completed, please retry",
                    details={"reason": exc.__class__.__name__, "attempts": attempts},
                ) from exc
            current_app.logger.warning(
                "Store conflict (%s), retrying attempt %s/%s", exc.__class__.__name__, attempt + 2, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
