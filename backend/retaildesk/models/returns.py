from __future__ import annotations

from ..extensions import db
from retaildesk.time_utils import to_utc_z

RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_APPROVED = "approved"
RETURN_STATUS_REJECTED = "rejected"
RETURN_STATUS_COMPLETED = "completed"


class Return(db.Model):
    """
    Return / warranty request against a prior sale.

    LIFECYCLE: pending -> approved | rejected, approved -> completed.
    rejected and completed are terminal. The sale is referenced for lookup
    only; deleting or changing a return never touches the sale.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    requested_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    reason = db.Column(db.Text, nullable=False)
    warranty_claim = db.Column(db.Boolean, nullable=False, default=False)

    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PENDING, index=True)

    refund_amount_cents = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Decision (approve / reject)
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Completion
    completed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "sale_number": self.sale.sale_number if self.sale else None,
            "requested_by_user_id": self.requested_by_user_id,
            "reason": self.reason,
            "warranty_claim": self.warranty_claim,
            "status": self.status,
            "refund_amount_cents": self.refund_amount_cents,
            "notes": self.notes,
            "processed_by_user_id": self.processed_by_user_id,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "completed_by_user_id": self.completed_by_user_id,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
