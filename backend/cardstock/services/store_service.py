from __future__ import annotations

from ..exceptions import NotFoundError, StoreCapacityConflictError, ValidationError
from ..extensions import db
from ..models import Inventory, Store, User
from ..validation import ModelValidationPolicy, require_identifier, validate_payload
from .capacity_service import calculate_store_capacity
from .concurrency import lock_for_update, run_atomic


STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "city", "state", "zip_code", "max_capacity"},
    required_on_create={"name", "address", "city", "state", "zip_code", "max_capacity"},
)


def _flatten_location(payload: dict | None) -> dict | None:
    """Accept the nested {"location": {...}} shape the API returns as well as flat fields."""
    if not isinstance(payload, dict) or not isinstance(payload.get("location"), dict):
        return payload
    flat = {k: v for k, v in payload.items() if k != "location"}
    for key in ("address", "city", "state", "zip_code"):
        if key in payload["location"]:
            flat.setdefault(key, payload["location"][key])
    return flat


def _check_state(patch: dict) -> None:
    state = patch.get("state")
    if state is not None:
        if len(state) != 2 or not state.isalpha():
            raise ValidationError("state must be a two-letter code")
        patch["state"] = state.upper()


def create_store(payload: dict) -> Store:
    patch = validate_payload(
        model=Store,
        payload=_flatten_location(payload),
        policy=STORE_POLICY,
        partial=False,
    )
    _check_state(patch)
    if patch["max_capacity"] <= 0:
        raise ValidationError("max_capacity must be greater than 0")

    def _op():
        store = Store(current_capacity=0, **patch)
        db.session.add(store)
        db.session.flush()
        return store

    return run_atomic(_op)


def get_store(store_id) -> Store:
    store_id = require_identifier(store_id, "store ID")
    store = db.session.get(Store, store_id)
    if store is None or not store.is_active:
        raise NotFoundError("Store", store_id)
    return store


def list_stores(include_inactive: bool = False) -> list[Store]:
    query = db.session.query(Store)
    if not include_inactive:
        query = query.filter(Store.is_active.is_(True))
    return query.order_by(Store.name.asc()).all()


def update_store(store_id, payload: dict) -> Store:
    """
    Update store details. max_capacity may not drop to zero or below the
    space the store's inventory already occupies.
    """
    store_id = require_identifier(store_id, "store ID")
    patch = validate_payload(
        model=Store,
        payload=_flatten_location(payload),
        policy=STORE_POLICY,
        partial=True,
    )
    _check_state(patch)

    def _op():
        store = lock_for_update(
            db.session.query(Store).filter(Store.id == store_id, Store.is_active.is_(True))
        ).first()
        if store is None:
            raise NotFoundError("Store", store_id)

        if "max_capacity" in patch:
            max_capacity = patch["max_capacity"]
            if max_capacity is None or max_capacity <= 0:
                raise ValidationError("max_capacity must be greater than 0")
            occupied = calculate_store_capacity(store.id)
            if max_capacity < occupied:
                raise StoreCapacityConflictError(max_capacity, occupied)

        for key, value in patch.items():
            setattr(store, key, value)

        db.session.flush()
        return store

    return run_atomic(_op)


def delete_store(store_id) -> Store:
    """Soft delete; refused while users are assigned or inventory is still on hand."""
    store_id = require_identifier(store_id, "store ID")

    def _op():
        store = lock_for_update(
            db.session.query(Store).filter(Store.id == store_id, Store.is_active.is_(True))
        ).first()
        if store is None:
            raise NotFoundError("Store", store_id)

        assigned = (
            db.session.query(User)
            .filter(User.assigned_store_id == store_id, User.is_active.is_(True))
            .count()
        )
        if assigned:
            raise ValidationError(
                f"Cannot delete store with {assigned} assigned users. Reassign users first."
            )

        stocked = (
            db.session.query(Inventory)
            .filter(Inventory.store_id == store_id, Inventory.is_active.is_(True))
            .count()
        )
        if stocked:
            raise ValidationError(
                "Cannot delete store with existing inventory. Transfer or remove inventory first."
            )

        store.is_active = False
        db.session.flush()
        return store

    return run_atomic(_op)
