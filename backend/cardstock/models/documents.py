from __future__ import annotations

from sqlalchemy import event

from ..constants import TRANSFER_STATUS_OPEN
from ..exceptions import StructuralInvariantError
from ..extensions import db
from ..time_utils import to_utc_z
from .base import generate_id


class TransferRequest(db.Model):
    """
    Inter-store transfer request.

    LIFECYCLE:
    1. open: draft, created by a manager of either store or a partner
    2. requested: submitted by the destination store
    3. sent: shipped by the source store (source inventory deducted)
    4. complete: received by the destination store (destination credited)
    5. closed: closed by a partner from any state; closing a sent request
       returns the quantities to the source store

    Line items reference source inventory records by id. They are looked up
    again at each transition, not re-validated against a snapshot.
    """
    __tablename__ = "transfer_requests"
    __table_args__ = (
        db.Index("ix_transfer_requests_from_status", "from_store_id", "status"),
        db.Index("ix_transfer_requests_to_status", "to_store_id", "status"),
        db.Index("ix_transfer_requests_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)

    # Format: TR-YYYYMMDD-NNNN (e.g., TR-20231215-0001)
    request_number = db.Column(db.String(32), nullable=False, unique=True)

    from_store_id = db.Column(db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id = db.Column(db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=TRANSFER_STATUS_OPEN, index=True)

    notes = db.Column(db.Text, nullable=True)
    close_reason = db.Column(db.Text, nullable=True)

    # User attribution for each lifecycle stage
    created_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    requested_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    sent_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    completed_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    closed_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    requested_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_store = db.relationship("Store", foreign_keys=[from_store_id])
    to_store = db.relationship("Store", foreign_keys=[to_store_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    requested_by = db.relationship("User", foreign_keys=[requested_by_user_id])
    sent_by = db.relationship("User", foreign_keys=[sent_by_user_id])
    completed_by = db.relationship("User", foreign_keys=[completed_by_user_id])
    closed_by = db.relationship("User", foreign_keys=[closed_by_user_id])

    items = db.relationship(
        "TransferRequestItem",
        back_populates="transfer_request",
        order_by="TransferRequestItem.position",
        cascade="all, delete-orphan",
    )
    status_history = db.relationship(
        "TransferStatusHistory",
        back_populates="transfer_request",
        order_by="TransferStatusHistory.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<TransferRequest {self.request_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_number": self.request_number,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "from_store_name": self.from_store.name if self.from_store else None,
            "to_store_name": self.to_store.name if self.to_store else None,
            "status": self.status,
            "notes": self.notes,
            "close_reason": self.close_reason,
            "items": [item.to_dict() for item in self.items],
            "status_history": [entry.to_dict() for entry in self.status_history],
            "created_by_user_id": self.created_by_user_id,
            "requested_by_user_id": self.requested_by_user_id,
            "sent_by_user_id": self.sent_by_user_id,
            "completed_by_user_id": self.completed_by_user_id,
            "closed_by_user_id": self.closed_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "requested_at": to_utc_z(self.requested_at),
            "sent_at": to_utc_z(self.sent_at),
            "completed_at": to_utc_z(self.completed_at),
            "closed_at": to_utc_z(self.closed_at),
            "updated_at": to_utc_z(self.updated_at),
            "is_active": self.is_active,
            "version_id": self.version_id,
        }


class TransferRequestItem(db.Model):
    __tablename__ = "transfer_request_items"
    __table_args__ = (
        db.UniqueConstraint("transfer_request_id", "position", name="uq_transfer_items_position"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    transfer_request_id = db.Column(
        db.String(36), db.ForeignKey("transfer_requests.id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)

    # Source inventory record (standard item or card container)
    inventory_id = db.Column(db.String(36), db.ForeignKey("inventory.id"), nullable=False, index=True)
    # Null when the source record is a card container
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=True, index=True)
    requested_quantity = db.Column(db.Integer, nullable=False)

    # [{"product_id": ..., "quantity": n}] for transfers out of card containers
    card_items = db.Column(db.JSON(none_as_null=True), nullable=True)

    transfer_request = db.relationship("TransferRequest", back_populates="items")
    inventory = db.relationship("Inventory")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "inventory_id": self.inventory_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "requested_quantity": self.requested_quantity,
            "card_items": self.card_items or [],
        }


class TransferStatusHistory(db.Model):
    __tablename__ = "transfer_status_history"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    transfer_request_id = db.Column(
        db.String(36), db.ForeignKey("transfer_requests.id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False)
    changed_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    transfer_request = db.relationship("TransferRequest", back_populates="status_history")

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "changed_by_user_id": self.changed_by_user_id,
            "changed_at": to_utc_z(self.changed_at),
        }


@event.listens_for(TransferRequest, "before_insert")
@event.listens_for(TransferRequest, "before_update")
def _check_distinct_stores(mapper, connection, target: TransferRequest) -> None:
    if target.from_store_id == target.to_store_id:
        raise StructuralInvariantError("Cannot transfer inventory to the same store")


@event.listens_for(TransferRequestItem, "before_insert")
def _check_item_quantity(mapper, connection, target: TransferRequestItem) -> None:
    if target.requested_quantity is None or target.requested_quantity < 1:
        raise StructuralInvariantError("Requested quantity must be at least 1")
