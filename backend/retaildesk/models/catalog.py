from __future__ import annotations

from ..extensions import db
from retaildesk.time_utils import to_utc_z

class CatalogItem(db.Model):
    """
    Sellable catalog item with its current stock level.

    item_code is the human-assigned code printed on shelf labels and
    receipts; it is unique across the catalog.

    QUANTITY:
    - quantity is the authoritative on-hand count and is never negative.
    - It is only changed through conditional UPDATE statements in
      catalog_service (decrement_stock / restock / adjust_stock), never by
      assigning the attribute and flushing. Every change also appends a
      StockMovement row in the same transaction.

    reorder_level is nullable: NULL means "use LOW_STOCK_DEFAULT_THRESHOLD".
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("item_code", name="uq_inventory_item_code"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_inventory_price_non_negative"),
        db.Index("ix_inventory_category_name", "category", "item_name"),
        db.Index("ix_inventory_active_quantity", "is_active", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_code = db.Column(db.String(64), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    reorder_level = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<CatalogItem id={self.id} code={self.item_code!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_code": self.item_code,
            "item_name": self.item_name,
            "category": self.category,
            "description": self.description,
            "image_url": self.image_url,
            "supplier": self.supplier,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "reorder_level": self.reorder_level,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class StockMovement(db.Model):
    """Append-only record of every quantity change on a catalog item."""
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item_occurred", "item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)

    # INITIAL, SALE, ORDER_CANCELLED, ADJUSTMENT
    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("CatalogItem", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "sale_id": self.sale_id,
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
