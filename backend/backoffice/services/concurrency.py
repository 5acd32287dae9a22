# Overview: Retry and row-locking helpers shared by the order-inventory engine.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class RetryableConflict(Exception):
    """A concurrent writer won a race; the whole unit can safely be re-run."""


def lock_for_update(query):
    """
    Apply row-level locking to a header lookup.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (it serializes writers on its
    own); PostgreSQL and MySQL honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run one atomic unit, retrying on transient lock conflicts.

    `func` must open, do and commit its own work. Any exception rolls the
    session back before it propagates, so a failed unit never leaves
    partial writes behind. Only OperationalError (deadlocks, busy
    database), StaleDataError and RetryableConflict are retried; business
    errors are raised immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError, RetryableConflict):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "transaction_retry attempt=%s of %s", attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
