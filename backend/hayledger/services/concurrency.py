# Overview: Row locking and retry helpers for read-check-write workflows.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply SELECT ... FOR UPDATE to a query.

    NOTE: SQLite ignores FOR UPDATE; its database-level write lock serializes
    writers instead. Postgres honors the row lock.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of DB work, retrying on transient lock/deadlock failures.

    The session is rolled back before each retry, so `func` must redo the
    whole read-check-write sequence. HayLedgerError subclasses propagate
    immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except TRANSIENT_ERRORS:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func` and commit its work as one all-or-nothing unit.

    Any failure rolls the session back, so a workflow step that raised halfway
    leaves no rows behind. Transient failures re-run `func` from the start.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
