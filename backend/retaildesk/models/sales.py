from __future__ import annotations

from ..extensions import db
from retaildesk.time_utils import to_utc_z

PAYMENT_METHODS = ("cash", "card", "eft")

SALE_STATUS_PENDING = "pending"
SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_CANCELLED = "cancelled"


class Sale(db.Model):
    """
    Sale header, created together with its lines in a single transaction.

    In-person sales are born "completed" and never move. Online storefront
    orders are born "pending" and are completed or cancelled by staff
    (fulfillment_service).

    IMMUTABLE FINANCIALS: total_amount_cents, payment_method and the lines
    never change after creation. Only status and handler fields move.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        # Composite index for the online order queue
        db.Index("ix_sales_online_status_created", "is_online", "status", "created_at"),
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "SALE-20260114-00042")
    sale_number = db.Column(db.String(64), nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_contact = db.Column(db.String(255), nullable=True)

    is_online = db.Column(db.Boolean, nullable=False, default=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)

    # Attribution: operator for in-person sales, buyer for online orders
    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    customer_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Fulfillment
    handled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    handled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_contact": self.customer_contact,
            "is_online": self.is_online,
            "status": self.status,
            "sold_by_user_id": self.sold_by_user_id,
            "customer_user_id": self.customer_user_id,
            "handled_by_user_id": self.handled_by_user_id,
            "handled_at": to_utc_z(self.handled_at) if self.handled_at else None,
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }

class SaleLine(db.Model):
    """
    Line item on a sale.

    item_name and unit_price_cents are copied from the cart at sale time so
    past receipts are unaffected by later catalog edits.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleLine.id"),
    )
    item = db.relationship("CatalogItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }

class SaleNumberSequence(db.Model):
    """
    Atomic per-day sale number counters.

    WHY: Sale numbers are allocated by incrementing one row per calendar day
    with a single UPDATE, so two checkouts can never observe the same value.
    """
    __tablename__ = "sale_number_sequences"
    __table_args__ = (
        db.UniqueConstraint("period", name="uq_sale_number_sequences_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    period = db.Column(db.String(8), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
