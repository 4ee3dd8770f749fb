# Overview: Service-layer operations for the catalog; item CRUD and every stock quantity change.

"""
Catalog Store

Stock invariants (authoritative):
- CatalogItem.quantity is never negative.
- Quantity is only changed by a single conditional UPDATE:
    decrement: SET quantity = quantity - n WHERE id = :id AND quantity >= n
    restock:   SET quantity = quantity + n WHERE id = :id
    adjust:    SET quantity = quantity + d WHERE id = :id AND quantity + d >= 0
  so two writers can never both act on the same stale read.
- Zero affected rows on a conditional decrement means "insufficient stock"
  (or an unknown item) and is reported as InsufficientStockError.
- Every quantity change appends a StockMovement in the same transaction.
  None of these helpers commit; the caller owns the transaction.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_, update

from ..extensions import db
from ..models import CatalogItem, SaleLine, StockMovement
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_catalog_item,
    validate_payload,
)
from retaildesk.time_utils import utcnow
from .concurrency import run_with_retry


MOVEMENT_INITIAL = "INITIAL"
MOVEMENT_SALE = "SALE"
MOVEMENT_ORDER_CANCELLED = "ORDER_CANCELLED"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"


CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_code", "item_name", "category", "description", "image_url",
        "supplier", "quantity", "unit_price_cents", "reorder_level", "is_active",
    },
    required_on_create={"item_code", "item_name", "category", "unit_price_cents"},
)

# Quantity is deliberately absent: stock changes go through adjust_stock
UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_code", "item_name", "category", "description", "image_url",
        "supplier", "unit_price_cents", "reorder_level", "is_active",
    },
)


class CatalogError(Exception):
    """Raised for catalog operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(CatalogError):
    """Raised when a conditional decrement affects zero rows."""
    def __init__(self, item_id: int, requested: int, available: int | None, item_name: str | None = None):
        label = item_name or f"item {item_id}"
        super().__init__(
            f"Insufficient stock for {label}",
            details={
                "item_id": item_id,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


# =============================================================================
# ITEM CRUD
# =============================================================================

def _ensure_code_available(item_code: str, exclude_id: int | None = None) -> None:
    query = db.session.query(CatalogItem.id).filter(CatalogItem.item_code == item_code)
    if exclude_id is not None:
        query = query.filter(CatalogItem.id != exclude_id)
    if query.first():
        raise ConflictError(f"Item code {item_code} already exists")


def create_item(payload: dict, actor_user_id: int | None = None) -> CatalogItem:
    """
    Create a catalog item from a validated payload.

    An opening quantity is recorded as an INITIAL stock movement.
    """
    patch = validate_payload(model=CatalogItem, payload=payload, policy=CREATE_POLICY, partial=False)
    enforce_rules_catalog_item(patch)
    _ensure_code_available(patch["item_code"])

    item = CatalogItem(**patch)
    if item.quantity is None:
        item.quantity = 0
    db.session.add(item)
    db.session.flush()

    if item.quantity:
        _record_movement(
            item_id=item.id,
            movement_type=MOVEMENT_INITIAL,
            quantity_delta=item.quantity,
            actor_user_id=actor_user_id,
            note="Opening stock",
        )

    db.session.commit()
    return item


def update_item(item_id: int, payload: dict) -> CatalogItem:
    """Patch descriptive fields and price. Quantity is not writable here."""
    item = get_item(item_id)
    if item is None:
        raise CatalogError("Item not found")

    patch = validate_payload(model=CatalogItem, payload=payload, policy=UPDATE_POLICY, partial=True)
    enforce_rules_catalog_item(patch)
    if "item_code" in patch:
        _ensure_code_available(patch["item_code"], exclude_id=item_id)

    def _op():
        current = get_item(item_id)
        if current is None:
            raise CatalogError("Item not found")
        for key, value in patch.items():
            setattr(current, key, value)
        db.session.commit()
        return current

    # stock writes bump version_id, so a sale landing mid-edit forces a reload
    return run_with_retry(_op)


def delete_item(item_id: int) -> None:
    """
    Delete an item that has never been sold.

    Items referenced by sale lines must be deactivated instead so receipts
    keep their foreign keys.
    """
    def _op():
        item = get_item(item_id)
        if item is None:
            raise CatalogError("Item not found")

        sold = db.session.query(SaleLine.id).filter_by(item_id=item_id).first()
        if sold:
            raise ConflictError("Item has sales history; deactivate it instead")

        db.session.query(StockMovement).filter_by(item_id=item_id).delete()
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)


def deactivate_item(item_id: int) -> CatalogItem:
    def _op():
        item = get_item(item_id)
        if item is None:
            raise CatalogError("Item not found")
        item.is_active = False
        db.session.commit()
        return item

    return run_with_retry(_op)


def get_item(item_id: int) -> CatalogItem | None:
    return db.session.get(CatalogItem, item_id)


def get_item_by_code(item_code: str) -> CatalogItem | None:
    return db.session.query(CatalogItem).filter_by(item_code=item_code.strip()).first()


def list_items(
    *,
    search: str | None = None,
    category: str | None = None,
    in_stock_only: bool = False,
    include_inactive: bool = False,
) -> list[CatalogItem]:
    """List catalog items ordered by name."""
    query = db.session.query(CatalogItem)

    if not include_inactive:
        query = query.filter(CatalogItem.is_active.is_(True))
    if in_stock_only:
        query = query.filter(CatalogItem.quantity > 0)
    if category:
        query = query.filter(CatalogItem.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                CatalogItem.item_name.ilike(pattern),
                CatalogItem.item_code.ilike(pattern),
                CatalogItem.description.ilike(pattern),
            )
        )

    return query.order_by(CatalogItem.item_name).all()


# =============================================================================
# STOCK CHANGES (caller commits)
# =============================================================================

def _record_movement(
    *,
    item_id: int,
    movement_type: str,
    quantity_delta: int,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> StockMovement:
    movement = StockMovement(
        item_id=item_id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        note=note[:255] if note else None,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def _current_quantity(item_id: int) -> int | None:
    return db.session.query(CatalogItem.quantity).filter(CatalogItem.id == item_id).scalar()


def decrement_stock(
    item_id: int,
    quantity: int,
    *,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    item_name: str | None = None,
) -> None:
    """
    Atomically remove `quantity` units from an item.

    Raises InsufficientStockError when the conditional UPDATE matches no
    row, i.e. the item is unknown or holds fewer than `quantity` units.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    stmt = (
        update(CatalogItem)
        .where(CatalogItem.id == item_id, CatalogItem.quantity >= quantity)
        .values(
            quantity=CatalogItem.quantity - quantity,
            version_id=CatalogItem.version_id + 1,
        )
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise InsufficientStockError(
            item_id=item_id,
            requested=quantity,
            available=_current_quantity(item_id),
            item_name=item_name,
        )

    _record_movement(
        item_id=item_id,
        movement_type=MOVEMENT_SALE,
        quantity_delta=-quantity,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
    )


def restock(
    item_id: int,
    quantity: int,
    *,
    movement_type: str = MOVEMENT_ORDER_CANCELLED,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> None:
    """Atomically credit `quantity` units back to an item."""
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    stmt = (
        update(CatalogItem)
        .where(CatalogItem.id == item_id)
        .values(
            quantity=CatalogItem.quantity + quantity,
            version_id=CatalogItem.version_id + 1,
        )
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise CatalogError("Item not found", details={"item_id": item_id})

    _record_movement(
        item_id=item_id,
        movement_type=movement_type,
        quantity_delta=quantity,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        note=note,
    )


def adjust_stock(item_id: int, delta: int, *, actor_user_id: int, note: str | None = None) -> CatalogItem:
    """
    Manual stock correction (count, damage, received goods).

    Negative corrections may not take the quantity below zero. Commits.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("quantity_delta must be a non-zero integer")

    if get_item(item_id) is None:
        raise CatalogError("Item not found")

    stmt = (
        update(CatalogItem)
        .where(CatalogItem.id == item_id, CatalogItem.quantity + delta >= 0)
        .values(
            quantity=CatalogItem.quantity + delta,
            version_id=CatalogItem.version_id + 1,
        )
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        db.session.rollback()
        raise InsufficientStockError(
            item_id=item_id,
            requested=-delta,
            available=_current_quantity(item_id),
        )

    _record_movement(
        item_id=item_id,
        movement_type=MOVEMENT_ADJUSTMENT,
        quantity_delta=delta,
        actor_user_id=actor_user_id,
        note=note,
    )
    db.session.commit()
    return get_item(item_id)


# =============================================================================
# READ SIDE
# =============================================================================

def get_low_stock_items() -> list[CatalogItem]:
    """
    Active items at or below their reorder level, lowest quantity first.

    Items without a reorder level use LOW_STOCK_DEFAULT_THRESHOLD.
    """
    threshold = current_app.config.get("LOW_STOCK_DEFAULT_THRESHOLD", 10)
    return (
        db.session.query(CatalogItem)
        .filter(
            CatalogItem.is_active.is_(True),
            CatalogItem.quantity <= func.coalesce(CatalogItem.reorder_level, threshold),
        )
        .order_by(CatalogItem.quantity.asc(), CatalogItem.item_name)
        .all()
    )


def list_movements(item_id: int) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(item_id=item_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .all()
    )
