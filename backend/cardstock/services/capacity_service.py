# backend/cardstock/services/capacity_service.py
"""
Store capacity accounting.

Occupied space is always recomputed from the store's active inventory rather
than patched incrementally:

- standard item:  quantity * product.unit_size  (0 if the product is missing)
- card container: container_unit_size, once, whatever the container holds

Store.current_capacity is only a cached copy of that sum for list views.
refresh_store_capacity() is its single writer; nothing else may assign it.
"""
from __future__ import annotations

import math

from ..exceptions import CapacityExceededError, NotFoundError
from ..extensions import db
from ..models import Inventory, Product, Store


# Space figures are rounded to this many decimal places before they are
# stored or compared.
CAPACITY_PRECISION = 6


def calculate_store_capacity(store_id: str) -> float:
    """Sum the space occupied by all active inventory records of a store. Read-only."""
    rows = (
        db.session.query(Inventory, Product.unit_size)
        .outerjoin(Product, Inventory.product_id == Product.id)
        .filter(Inventory.store_id == store_id, Inventory.is_active.is_(True))
        .all()
    )

    parts = []
    for record, unit_size in rows:
        if record.card_container is not None:
            parts.append(record.card_container.get("container_unit_size") or 0)
        elif unit_size:
            parts.append((record.quantity or 0) * unit_size)
    return round(math.fsum(parts), CAPACITY_PRECISION)


def available_capacity(store: Store) -> float:
    return round(store.max_capacity - calculate_store_capacity(store.id), CAPACITY_PRECISION)


def ensure_capacity(store: Store, required: float, *, additional: bool = False) -> None:
    """Reject (never clamp) when required space exceeds what the store has left."""
    required = round(required, CAPACITY_PRECISION)
    if required <= 0:
        return
    available = available_capacity(store)
    if required > available:
        raise CapacityExceededError(required, available, additional=additional)


def refresh_store_capacity(store_id: str) -> Store:
    """Recompute and store the current_capacity snapshot. Caller commits."""
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store", store_id)
    new_capacity = calculate_store_capacity(store_id)
    if store.current_capacity != new_capacity:
        store.current_capacity = new_capacity
    db.session.flush()
    return store


def recalculate_all(store_id: str | None = None) -> list[dict]:
    """
    Repair pass over one or all stores. Returns the drift found per store so
    the CLI can report which snapshots were stale.
    """
    query = db.session.query(Store)
    if store_id is not None:
        query = query.filter(Store.id == store_id)

    report = []
    for store in query.order_by(Store.name.asc()).all():
        previous = store.current_capacity
        refresh_store_capacity(store.id)
        report.append({
            "store_id": store.id,
            "name": store.name,
            "previous": previous,
            "current": store.current_capacity,
            "drift": store.current_capacity - (previous or 0),
        })
    db.session.commit()
    return report
