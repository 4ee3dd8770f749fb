"""
Sale Recorder - the only path that creates financial records and
authoritatively decrements stock.

A sale is four dependent writes (sale number, header, lines, stock
decrements) executed in one database transaction. On any failure nothing
is kept: no header, no lines, no decrements, and the sale number is released.

Prices come from the cart (snapshotted when the line was added), never
re-read from the catalog here.
"""

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from ..cart import Cart, CartError, CartLine
from ..extensions import db
from ..models import Sale, SaleLine
from ..models.sales import PAYMENT_METHODS, SALE_STATUS_COMPLETED, SALE_STATUS_PENDING
from ..validation import parse_positive_int
from retaildesk.time_utils import utcnow, to_utc_z
from . import catalog_service
from .catalog_service import InsufficientStockError
from .concurrency import run_with_retry
from .sale_number_service import next_sale_number, SaleNumberError


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleStockError(SaleError):
    """A line could not be decremented; the whole sale was rolled back."""


def build_cart(requested: list[dict]) -> Cart:
    """
    Build a cart from client-supplied (item_id, quantity) pairs.

    Names, prices and stock come from the catalog at request time; clients
    never send prices.
    """
    if not isinstance(requested, list) or not requested:
        raise SaleError("items must be a non-empty list")

    cart = Cart()
    for entry in requested:
        if not isinstance(entry, dict):
            raise SaleError("Each item must be an object with item_id and quantity")
        item_id = parse_positive_int(entry.get("item_id"), "item_id")
        quantity = parse_positive_int(entry.get("quantity", 1), "quantity")

        item = catalog_service.get_item(item_id)
        if item is None or not item.is_active:
            raise SaleError("Item not available", details={"item_id": item_id})

        try:
            cart.add(item, quantity)
        except CartError as e:
            raise SaleStockError(str(e), details=e.details) from e
    return cart


def _validate_request(lines: list[CartLine], payment_method: str, is_online: bool, sold_by_user_id: int | None) -> None:
    if not lines:
        raise SaleError("Cart is empty")

    if payment_method not in PAYMENT_METHODS:
        raise SaleError(
            f"Invalid payment method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )

    if not is_online and sold_by_user_id is None:
        raise SaleError("In-person sales require an operator")

    seen: set[int] = set()
    for line in lines:
        if line.quantity <= 0:
            raise SaleError("Line quantities must be positive", details={"item_id": line.item_id})
        if line.unit_price_cents < 0:
            raise SaleError("Line prices must not be negative", details={"item_id": line.item_id})
        if line.item_id in seen:
            raise SaleError("Duplicate item in cart", details={"item_id": line.item_id})
        seen.add(line.item_id)


def _record_sale_locked(
    lines: list[CartLine],
    *,
    payment_method: str,
    customer_name: str | None,
    customer_contact: str | None,
    sold_by_user_id: int | None,
    customer_user_id: int | None,
    is_online: bool,
) -> Sale:
    now = utcnow()

    # Step 1: sale number
    try:
        sale_number = next_sale_number(at=now)
    except SaleNumberError as e:
        raise SaleError("Could not allocate a sale number") from e

    # Step 2: header
    sale = Sale(
        sale_number=sale_number,
        total_amount_cents=sum(line.subtotal_cents for line in lines),
        payment_method=payment_method,
        customer_name=customer_name or None,
        customer_contact=customer_contact or None,
        is_online=is_online,
        status=SALE_STATUS_PENDING if is_online else SALE_STATUS_COMPLETED,
        sold_by_user_id=None if is_online else sold_by_user_id,
        customer_user_id=customer_user_id,
        sale_date=now,
        created_at=now,
    )
    db.session.add(sale)
    db.session.flush()

    # Step 3: lines (denormalized name/price)
    for line in lines:
        db.session.add(SaleLine(
            sale_id=sale.id,
            item_id=line.item_id,
            item_name=line.item_name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            subtotal_cents=line.subtotal_cents,
        ))
    db.session.flush()

    # Step 4: conditional decrements
    for line in lines:
        catalog_service.decrement_stock(
            line.item_id,
            line.quantity,
            sale_id=sale.id,
            actor_user_id=sold_by_user_id or customer_user_id,
            item_name=line.item_name,
        )

    return sale


def record_sale(
    lines: list[CartLine],
    *,
    payment_method: str,
    customer_name: str | None = None,
    customer_contact: str | None = None,
    sold_by_user_id: int | None = None,
    customer_user_id: int | None = None,
    is_online: bool = False,
) -> Sale:
    """
    Convert finalized cart lines into a persisted sale.

    Raises:
        SaleError: validation failure before any write, or a failed write
            (everything rolled back).
        SaleStockError: a line exceeded available stock; details carry the
            item id, requested and available quantities.
    """
    lines = list(lines)
    _validate_request(lines, payment_method, is_online, sold_by_user_id)

    def _op():
        try:
            sale = _record_sale_locked(
                lines,
                payment_method=payment_method,
                customer_name=customer_name,
                customer_contact=customer_contact,
                sold_by_user_id=sold_by_user_id,
                customer_user_id=customer_user_id,
                is_online=is_online,
            )
            db.session.commit()
            return sale
        except InsufficientStockError as e:
            db.session.rollback()
            raise SaleStockError(str(e), details=e.details) from e
        except SaleError:
            db.session.rollback()
            raise
        except SQLAlchemyError:
            db.session.rollback()
            raise

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def get_sale_by_number(sale_number: str) -> Sale | None:
    return db.session.query(Sale).filter_by(sale_number=sale_number).first()


def get_sale_lines(sale_id: int) -> list[SaleLine]:
    return db.session.query(SaleLine).filter_by(sale_id=sale_id).order_by(SaleLine.id).all()


def list_sales(
    *,
    is_online: bool | None = None,
    status: str | None = None,
    sold_by_user_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
) -> list[Sale]:
    """Sales newest first. `start` is inclusive, `end` exclusive."""
    query = db.session.query(Sale)
    if is_online is not None:
        query = query.filter(Sale.is_online.is_(is_online))
    if status:
        query = query.filter(Sale.status == status)
    if sold_by_user_id is not None:
        query = query.filter(Sale.sold_by_user_id == sold_by_user_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date < end)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(limit).all()


def get_receipt(sale_id: int) -> dict:
    """
    Receipt payload for a sale.

    Totals are recomputed from the stored lines and checked against the
    header so a corrupted row is surfaced rather than printed.
    """
    sale = get_sale(sale_id)
    if not sale:
        raise SaleError("Sale not found")

    lines = get_sale_lines(sale_id)
    line_total = sum(line.subtotal_cents for line in lines)
    if line_total != sale.total_amount_cents:
        raise SaleError(
            "Sale total does not match its lines",
            details={"total_amount_cents": sale.total_amount_cents, "lines_total_cents": line_total},
        )

    return {
        "sale_number": sale.sale_number,
        "sale_date": to_utc_z(sale.sale_date),
        "payment_method": sale.payment_method,
        "customer_name": sale.customer_name,
        "customer_contact": sale.customer_contact,
        "is_online": sale.is_online,
        "status": sale.status,
        "lines": [
            {
                "item_name": line.item_name,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "subtotal_cents": line.subtotal_cents,
            }
            for line in lines
        ],
        "total_amount_cents": sale.total_amount_cents,
    }
