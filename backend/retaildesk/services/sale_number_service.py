# Overview: Centralized sale number generator backed by per-day sequences.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SaleNumberSequence
from retaildesk.time_utils import utcnow, period_key


class SaleNumberError(Exception):
    """Raised when a sale number cannot be allocated."""
    pass


def _read_allocated(period: str) -> int:
    current = (
        db.session.query(SaleNumberSequence.next_number)
        .filter_by(period=period)
        .scalar()
    )
    if current is None:
        raise SaleNumberError(f"Sequence for {period} vanished during allocation")
    return current - 1


def next_sale_number(*, at: datetime | None = None, pad: int = 5) -> str:
    """
    Atomically allocate the next sale number for the day of `at`.

    Format: {SALE_NUMBER_PREFIX}-{YYYYMMDD}-{NNNNN}. Numbers are unique,
    sort lexicographically within a day and increase monotonically.

    The increment is a single UPDATE, so it takes the row (or database)
    write lock and two concurrent callers always see different values.
    Runs in the caller's transaction: if the caller rolls back, the number
    is released and will be handed out again.
    """
    prefix = current_app.config.get("SALE_NUMBER_PREFIX", "SALE")
    period = period_key(at or utcnow())

    stmt = (
        update(SaleNumberSequence)
        .where(SaleNumberSequence.period == period)
        .values(next_number=SaleNumberSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        next_num = _read_allocated(period)
    else:
        seq = SaleNumberSequence(period=period, next_number=2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            # Another checkout created today's row first; take the next value from it
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise SaleNumberError(f"Could not allocate sale number for {period}")
            db.session.flush()
            next_num = _read_allocated(period)

    return f"{prefix}-{period}-{next_num:0{pad}d}"
