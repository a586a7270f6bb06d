from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import generate_id


class User(db.Model):
    """
    Application user. Authentication (passwords, login) lives outside this
    service; only the role and store attachment matter here.
    """
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    username = db.Column(db.String(80), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(32), nullable=False, index=True)
    assigned_store_id = db.Column(db.String(36), db.ForeignKey("stores.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    assigned_store = db.relationship("Store", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "assigned_store_id": self.assigned_store_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
