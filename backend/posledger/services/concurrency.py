# Overview: Transaction, locking and retry helpers shared by every ledger write.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConcurrencyConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; see begin_write().
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Take the SQLite database write lock at the start of a transaction.

    SQLite has no row locks, so BEGIN IMMEDIATE is what serializes two
    read-modify-write transactions there. On other dialects the FOR UPDATE
    row locks do that job and this is a no-op. Safe to call when a
    transaction is already open on the connection.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.driver_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic version conflicts). Any other exception rolls the session back
    and propagates unchanged. When retries run out the failure is surfaced as
    ConcurrencyConflictError.
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LEDGER_RETRY_BACKOFF", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConcurrencyConflictError(
                    "Ledger is busy; retry the operation",
                    details={"attempts": attempts, "cause": exc.__class__.__name__},
                ) from exc
            current_app.logger.warning(
                "Concurrency failure (%s), retry %d/%d",
                exc.__class__.__name__, attempt + 1, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, **retry_kwargs):
    """
    Run func as one all-or-nothing transaction.

    func performs its writes (flush only); the commit happens here, inside the
    retry loop, so a lock failure at commit time is retried too.
    """
    def _op():
        begin_write()
        result = func()
        db.session.commit()
        return result

    return run_with_retry(_op, **retry_kwargs)
