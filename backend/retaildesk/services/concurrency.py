# Overview: Service-layer helpers for concurrency; retry on lock contention and stale versions.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run `func` and re-run it when the database reports contention.

    OperationalError covers "database is locked" and deadlocks,
    StaleDataError a version_id mismatch. The session is rolled back before
    each new attempt so `func` always starts from a clean transaction. The
    last failure is re-raised once attempts are exhausted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            current_app.logger.warning(
                "Retrying after %s (attempt %s/%s, sleeping %.2fs)",
                type(exc).__name__, attempt, attempts, delay,
            )
            time.sleep(delay)
