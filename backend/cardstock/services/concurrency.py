# Overview: Transaction boundary and conflict retry for service operations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Failures that mean "someone else wrote first": a version_id mismatch on a
# store, inventory record or transfer request, or a lock/deadlock timeout.
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a mutation reads before writing.

    SQLite ignores the clause; the version_id counters still catch conflicts there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func, replaying it after a rollback when it hits a RETRYABLE_ERRORS
    conflict. Sleeps backoff_base * 2**n between tries; the final failure is
    re-raised unchanged.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Write conflict (%s), retrying %d/%d", type(exc).__name__, attempt, attempts - 1
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))


def run_atomic(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func as one unit of work: commit on success, roll back on any failure.

    A rejected operation leaves no partial writes behind, and the whole unit
    is replayed from fresh reads when a version conflict is hit.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
