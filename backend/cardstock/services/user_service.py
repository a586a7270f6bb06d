from __future__ import annotations

from ..constants import ROLE_PARTNER, USER_ROLES
from ..exceptions import NotFoundError, ValidationError
from ..extensions import db
from ..models import Store, User
from ..validation import require_choice, require_identifier
from .concurrency import run_atomic


def create_user(username: str, email: str, role: str, assigned_store_id: str | None = None) -> User:
    """
    Register an actor. Managers and employees must be attached to an active
    store; partners may be attached to one but act globally either way.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValidationError("username and email are required")
    role = require_choice(role, "role", USER_ROLES)

    if assigned_store_id is not None:
        assigned_store_id = require_identifier(assigned_store_id, "store ID")
    elif role != ROLE_PARTNER:
        raise ValidationError(f"A {role} must be assigned to a store")

    def _op():
        if assigned_store_id is not None:
            store = db.session.get(Store, assigned_store_id)
            if store is None or not store.is_active:
                raise NotFoundError("Store", assigned_store_id)

        clash = (
            db.session.query(User)
            .filter((User.username == username) | (User.email == email))
            .first()
        )
        if clash is not None:
            raise ValidationError("Username or email already in use")

        user = User(username=username, email=email, role=role, assigned_store_id=assigned_store_id)
        db.session.add(user)
        db.session.flush()
        return user

    return run_atomic(_op)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def set_user_active(username: str, active: bool) -> User:
    def _op():
        user = db.session.query(User).filter(User.username == username).first()
        if user is None:
            raise NotFoundError("User", username)
        user.is_active = active
        db.session.flush()
        return user

    return run_atomic(_op)
