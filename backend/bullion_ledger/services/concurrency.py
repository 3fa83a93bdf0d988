# Overview: Unit-of-work helpers: row locks, retry on lock/stale-data failures, all-or-nothing commit.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, translate_db_error
from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back between
    attempts so every retry starts from a clean unit.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


@contextmanager
def atomic(operation: str):
    """
    One all-or-nothing unit of work on the current session.

    Commits on success. On any exception the whole unit is rolled back:
    - LedgerError is re-raised untouched (logged at WARNING)
    - OperationalError / StaleDataError propagate raw so run_with_retry can retry
    - other SQLAlchemy errors become a typed LedgerError via translate_db_error
    """
    logger = current_app.logger
    try:
        yield db.session
        db.session.commit()
    except LedgerError as exc:
        db.session.rollback()
        logger.warning("[%s] rolled back: %s (%s)", operation, exc.message, exc.code)
        raise
    except RETRYABLE_ERRORS:
        db.session.rollback()
        logger.warning("[%s] rolled back on lock/stale-data conflict", operation)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("[%s] rolled back on database error", operation)
        raise translate_db_error(exc) from exc
    except Exception:
        db.session.rollback()
        logger.exception("[%s] rolled back on unexpected error", operation)
        raise


def run_atomic(operation: str, func):
    """Run ``func`` inside ``atomic`` with whole-unit retries; returns its result."""

    def _unit():
        with atomic(operation):
            return func()

    attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3)
    try:
        return run_with_retry(_unit, attempts=attempts)
    except RETRYABLE_ERRORS as exc:
        current_app.logger.exception("[%s] gave up after %s attempts", operation, attempts)
        raise translate_db_error(exc) from exc
