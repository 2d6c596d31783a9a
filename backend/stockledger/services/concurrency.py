# Overview: Service-layer helpers for row locking and bounded retry of conflicting writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import StockConflictError

RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts on versioned rows) and IntegrityError
    (two writers racing to insert the same unique row). The session is
    rolled back before each retry, so func must be the whole unit of work:
    it re-runs its own existence/uniqueness checks, which turn a lost race
    into the proper domain error on the next attempt.

    When attempts are exhausted the last error is surfaced as
    StockConflictError (HTTP 409).
    """
    if attempts is None:
        attempts = int(current_app.config.get("STOCK_RETRY_ATTEMPTS", 3))
    if backoff_base is None:
        backoff_base = float(current_app.config.get("STOCK_RETRY_BACKOFF", 0.1))
    attempts = max(attempts, 1)

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning(
                    "Giving up after %d attempts: %s", attempts, exc.__class__.__name__
                )
                raise StockConflictError(
                    "Concurrent update conflict; please retry the operation"
                ) from exc
            current_app.logger.info(
                "Retrying after %s (attempt %d of %d)", exc.__class__.__name__, attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
