# Overview: Service-layer operations for returns; request, decide and complete return / warranty requests.

"""
Returns Processor

LIFECYCLE:
    pending -> approved -> completed
    pending -> rejected
rejected and completed are terminal.

Each transition is a conditional UPDATE on the current status so a lost
race surfaces as ReturnError instead of silently overwriting a decision.

Returns never touch inventory. Goods that come back sellable are put back
with a manual stock adjustment.

REFUND BOUND: the refunds granted across all approved/completed returns of
a sale never exceed that sale's total. Approval bumps the sale's version_id
conditionally on the version it read, so two approvals against one sale
are serialised and the loser re-reads what has already been granted.
"""

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Return, Sale
from ..models.returns import (
    RETURN_STATUS_APPROVED,
    RETURN_STATUS_COMPLETED,
    RETURN_STATUS_PENDING,
    RETURN_STATUS_REJECTED,
)
from ..models.sales import SALE_STATUS_CANCELLED
from retaildesk.time_utils import utcnow
from .concurrency import run_with_retry


class ReturnError(Exception):
    """Raised for return operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ReturnNotFoundError(ReturnError):
    """Raised when the return or its sale does not exist."""


# =============================================================================
# CREATION
# =============================================================================

def create_return(
    sale_id: int,
    reason: str,
    warranty_claim: bool = False,
    requested_by_user_id: int | None = None,
) -> Return:
    """
    Open a return (or warranty) request against a sale.

    The sale must exist and must not be a cancelled order.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ReturnError("Reason is required")

    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise ReturnNotFoundError("Sale not found", details={"sale_id": sale_id})
    if sale.status == SALE_STATUS_CANCELLED:
        raise ReturnError("Cannot return a cancelled order", details={"sale_id": sale_id})

    return_doc = Return(
        sale_id=sale_id,
        requested_by_user_id=requested_by_user_id,
        reason=reason,
        warranty_claim=bool(warranty_claim),
        status=RETURN_STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(return_doc)
    db.session.commit()
    return return_doc


# =============================================================================
# TRANSITIONS
# =============================================================================

def _refunded_elsewhere(sale_id: int, exclude_return_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Return.refund_amount_cents), 0))
        .filter(
            Return.sale_id == sale_id,
            Return.id != exclude_return_id,
            Return.status.in_((RETURN_STATUS_APPROVED, RETURN_STATUS_COMPLETED)),
        )
        .scalar()
    )
    return int(total or 0)


def _claim_sale(sale_id: int, read_version: int) -> None:
    stmt = (
        update(Sale)
        .where(Sale.id == sale_id, Sale.version_id == read_version)
        .values(version_id=Sale.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        db.session.rollback()
        raise StaleDataError(f"Sale {sale_id} changed while a refund was being approved")


def _transition(return_id: int, from_status: str, values: dict) -> Return:
    stmt = (
        update(Return)
        .where(Return.id == return_id, Return.status == from_status)
        .values(version_id=Return.version_id + 1, **values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        db.session.rollback()
        current = db.session.get(Return, return_id)
        if current is None:
            raise ReturnNotFoundError("Return not found", details={"return_id": return_id})
        raise ReturnError(
            f"Return is {current.status}; expected {from_status}",
            details={"return_id": return_id, "status": current.status},
        )
    db.session.commit()
    return db.session.get(Return, return_id)


def approve_return(
    return_id: int,
    processor_id: int,
    refund_amount_cents: int | None = None,
    notes: str | None = None,
) -> Return:
    """
    Approve a pending return.

    refund_amount_cents defaults to whatever of the sale total has not
    already been refunded.
    """
    def _op():
        return_doc = db.session.get(Return, return_id)
        if return_doc is None:
            raise ReturnNotFoundError("Return not found", details={"return_id": return_id})

        sale = db.session.get(Sale, return_doc.sale_id)
        if sale.status == SALE_STATUS_CANCELLED:
            raise ReturnError("Cannot refund a cancelled order", details={"sale_id": sale.id})
        read_version = sale.version_id
        remaining = sale.total_amount_cents - _refunded_elsewhere(sale.id, return_id)

        refund = remaining if refund_amount_cents is None else refund_amount_cents
        if isinstance(refund, bool) or not isinstance(refund, int):
            raise ReturnError("refund_amount_cents must be an integer")
        if refund < 0:
            raise ReturnError("refund_amount_cents must be >= 0")
        if refund > remaining:
            raise ReturnError(
                "Refund exceeds the unrefunded sale total",
                details={"refund_amount_cents": refund, "refundable_cents": max(remaining, 0)},
            )

        _claim_sale(sale.id, read_version)

        return _transition(
            return_id,
            RETURN_STATUS_PENDING,
            {
                "status": RETURN_STATUS_APPROVED,
                "refund_amount_cents": refund,
                "notes": notes,
                "processed_by_user_id": processor_id,
                "processed_at": utcnow(),
            },
        )

    return run_with_retry(_op)


def reject_return(return_id: int, processor_id: int, notes: str | None = None) -> Return:
    """Reject a pending return. Terminal."""
    return run_with_retry(lambda: _transition(
        return_id,
        RETURN_STATUS_PENDING,
        {
            "status": RETURN_STATUS_REJECTED,
            "notes": notes,
            "processed_by_user_id": processor_id,
            "processed_at": utcnow(),
        },
    ))


def complete_return(return_id: int, processor_id: int, notes: str | None = None) -> Return:
    """Mark an approved return as refunded / exchanged. Terminal."""
    values = {
        "status": RETURN_STATUS_COMPLETED,
        "completed_by_user_id": processor_id,
        "completed_at": utcnow(),
    }
    if notes is not None:
        values["notes"] = notes
    return run_with_retry(lambda: _transition(return_id, RETURN_STATUS_APPROVED, values))


# =============================================================================
# QUERIES
# =============================================================================

def get_return(return_id: int) -> Return | None:
    return db.session.get(Return, return_id)


def list_returns(status: str | None = None) -> list[Return]:
    query = db.session.query(Return)
    if status:
        query = query.filter(Return.status == status)
    return query.order_by(Return.created_at.desc(), Return.id.desc()).all()


def get_sale_returns(sale_id: int) -> list[Return]:
    return (
        db.session.query(Return)
        .filter_by(sale_id=sale_id)
        .order_by(Return.created_at.asc(), Return.id.asc())
        .all()
    )


def list_customer_returns(user_id: int) -> list[Return]:
    """Returns requested by the user or raised against the user's own orders."""
    return (
        db.session.query(Return)
        .join(Sale, Sale.id == Return.sale_id)
        .filter(
            db.or_(
                Return.requested_by_user_id == user_id,
                Sale.customer_user_id == user_id,
            )
        )
        .order_by(Return.created_at.desc(), Return.id.desc())
        .all()
    )
