# Overview: Service-layer operations for order numbers; one locked counter row.

"""
Order Sequence Service

Order numbers are small, human-facing integers printed on receipts, so they
come from a persisted counter row rather than UUIDs.

INVARIANTS:
- allocate_order_number() runs inside the caller's transaction. The counter
  row stays locked (FOR UPDATE, or the SQLite write lock) until that
  transaction ends, which serializes concurrent order creation at this one row.
- A rolled-back transaction rolls the increment back with it: committed order
  numbers are unique, gap-free and strictly increasing in commit order.
- The row is created on first use with an idempotent insert-or-ignore, so two
  concurrent first calls cannot both create it.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import OrderSequenceCounter
from .concurrency import lock_for_update, run_in_transaction


def _counter_id() -> str:
    return current_app.config.get("ORDER_COUNTER_ID", "order-counter")


def _ensure_counter_row(counter_id: str) -> None:
    dialect = db.engine.dialect.name
    if dialect in ("sqlite", "postgresql"):
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        stmt = (
            insert(OrderSequenceCounter)
            .values(id=counter_id, value=0)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        db.session.execute(stmt)
        return

    if db.session.get(OrderSequenceCounter, counter_id) is not None:
        return
    savepoint = db.session.begin_nested()
    try:
        db.session.add(OrderSequenceCounter(id=counter_id, value=0))
        db.session.flush()
        savepoint.commit()
    except IntegrityError:
        # Another transaction created the row first; the lock below waits on it
        savepoint.rollback()


def allocate_order_number() -> str:
    """
    Increment the counter inside the current transaction and return the new
    value as the order number. Does NOT commit.
    """
    counter_id = _counter_id()
    _ensure_counter_row(counter_id)

    counter = (
        lock_for_update(db.session.query(OrderSequenceCounter).filter_by(id=counter_id))
        .populate_existing()
        .one()
    )
    counter.value += 1
    db.session.flush()

    current_app.logger.info("Allocated order number %s", counter.value)
    return str(counter.value)


def next_order_number() -> str:
    """Allocate an order number in its own committed transaction."""
    return run_in_transaction(allocate_order_number)


def current_order_number() -> str | None:
    """Last number handed out, or None before the first order."""
    counter = db.session.get(OrderSequenceCounter, _counter_id())
    if counter is None:
        return None
    return str(counter.value)
