# Overview: Online order lifecycle; staff complete or cancel pending storefront orders.

"""
Order Fulfillment

LIFECYCLE (online sales only):
    pending -> completed
    pending -> cancelled
completed and cancelled are terminal. In-person sales are born completed
and are never handled here.

Every transition is one conditional UPDATE guarded by
`status = 'pending' AND is_online`, so two staff members acting on the same
order cannot both succeed.

An order with an approved or completed refund cannot be cancelled. The
cancel is also conditional on the sale version read alongside that check,
so a refund approved in between sends the cancel back to re-check.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Sale, SaleLine
from ..models.returns import RETURN_STATUS_APPROVED, RETURN_STATUS_COMPLETED
from ..models.sales import SALE_STATUS_CANCELLED, SALE_STATUS_COMPLETED, SALE_STATUS_PENDING
from retaildesk.time_utils import utcnow
from . import catalog_service, return_service
from .concurrency import run_with_retry


class OrderStateError(Exception):
    """Raised when an order transition is not allowed."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderStateError):
    """Raised when the order does not exist."""


def _explain_rejected_transition(sale_id: int, target: str) -> OrderStateError:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        return OrderNotFoundError("Order not found", details={"sale_id": sale_id})
    if not sale.is_online:
        return OrderStateError("Only online orders can be fulfilled", details={"sale_id": sale_id})
    return OrderStateError(
        f"Cannot mark a {sale.status} order as {target}",
        details={"sale_id": sale_id, "status": sale.status},
    )


def _transition(sale_id: int, target: str, handler_id: int, expected_version: int | None = None) -> None:
    conditions = [
        Sale.id == sale_id,
        Sale.is_online.is_(True),
        Sale.status == SALE_STATUS_PENDING,
    ]
    if expected_version is not None:
        conditions.append(Sale.version_id == expected_version)

    stmt = (
        update(Sale)
        .where(*conditions)
        .values(
            status=target,
            handled_by_user_id=handler_id,
            handled_at=utcnow(),
            version_id=Sale.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        db.session.rollback()
        current = db.session.get(Sale, sale_id)
        if (
            expected_version is not None
            and current is not None
            and current.is_online
            and current.status == SALE_STATUS_PENDING
        ):
            raise StaleDataError(f"Order {sale_id} changed while being handled")
        raise _explain_rejected_transition(sale_id, target)


def _reload(sale_id: int) -> Sale:
    # commit expired the identity map, so this re-reads the row
    return db.session.get(Sale, sale_id)


def _ensure_no_granted_refunds(sale_id: int) -> None:
    granted = [
        doc.id
        for doc in return_service.get_sale_returns(sale_id)
        if doc.status in (RETURN_STATUS_APPROVED, RETURN_STATUS_COMPLETED)
    ]
    if granted:
        raise OrderStateError(
            "Order has a granted refund and can no longer be cancelled",
            details={"sale_id": sale_id, "return_ids": granted},
        )


def complete_order(sale_id: int, handler_id: int) -> Sale:
    """Mark a pending online order as completed (handed over / shipped)."""
    def _op():
        _transition(sale_id, SALE_STATUS_COMPLETED, handler_id)
        db.session.commit()
        return _reload(sale_id)

    return run_with_retry(_op)


def cancel_order(sale_id: int, handler_id: int) -> Sale:
    """
    Cancel a pending online order.

    When RESTOCK_ON_ORDER_CANCEL is set the sold quantities are credited back
    to the catalog in the same transaction as the status change.
    """
    restock = current_app.config.get("RESTOCK_ON_ORDER_CANCEL", True)

    def _op():
        sale = db.session.get(Sale, sale_id)
        expected_version = None
        if sale is not None:
            expected_version = sale.version_id
            if sale.is_online and sale.status == SALE_STATUS_PENDING:
                _ensure_no_granted_refunds(sale_id)

        _transition(sale_id, SALE_STATUS_CANCELLED, handler_id, expected_version=expected_version)
        if restock:
            lines = db.session.query(SaleLine).filter_by(sale_id=sale_id).order_by(SaleLine.id).all()
            for line in lines:
                catalog_service.restock(
                    line.item_id,
                    line.quantity,
                    movement_type=catalog_service.MOVEMENT_ORDER_CANCELLED,
                    sale_id=sale_id,
                    actor_user_id=handler_id,
                )
        db.session.commit()
        return _reload(sale_id)

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def list_online_orders(status: str | None = None) -> list[Sale]:
    """Online orders, oldest pending first so the queue is worked in order."""
    query = db.session.query(Sale).filter(Sale.is_online.is_(True))
    if status:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def list_customer_orders(user_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.is_online.is_(True), Sale.customer_user_id == user_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def count_pending_orders() -> int:
    return (
        db.session.query(func.count(Sale.id))
        .filter(Sale.is_online.is_(True), Sale.status == SALE_STATUS_PENDING)
        .scalar()
    ) or 0
