from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import generate_id


class Store(db.Model):
    """
    Physical store / warehouse.

    current_capacity is a cached snapshot of the space occupied by the store's
    active inventory. It is written only by capacity_service.refresh_store_capacity
    and can always be recomputed from the inventory table.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_name", "name"),
        db.Index("ix_stores_is_active", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(120), nullable=False)

    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(2), nullable=False)
    zip_code = db.Column(db.String(16), nullable=False)

    max_capacity = db.Column(db.Float, nullable=False)
    current_capacity = db.Column(db.Float, nullable=False, default=0)

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

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.zip_code}"

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": {
                "address": self.address,
                "city": self.city,
                "state": self.state,
                "zip_code": self.zip_code,
            },
            "full_address": self.full_address,
            "max_capacity": self.max_capacity,
            "current_capacity": self.current_capacity,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
