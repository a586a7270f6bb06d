# Overview: Service-layer operations for inventory records; encapsulates business logic and database work.

# backend/cardstock/services/inventory_service.py
"""
Inventory invariants (authoritative)

Record shape:
- A record is either a standard item (product_id + quantity) or a card
  container (card_container document). Never both, never neither; the model
  rejects it at flush time.
- At most one ACTIVE standard record exists per (store, product, location).
  create_inventory() merges into it instead of inserting a second one.

Capacity:
- Every quantity-increasing mutation is checked as "required vs. available"
  space before anything is written; required > available is rejected, never
  clamped. Decreases are never rejected.
- After every mutation the store's current_capacity snapshot is recomputed
  from the active records (capacity_service), inside the same transaction.

Soft delete:
- Records are deactivated, not removed, so transfer requests can still
  resolve them by id.
"""
from __future__ import annotations

from ..constants import CONTAINER_TYPES, LOCATIONS, other_location
from ..exceptions import NotFoundError, ValidationError
from ..extensions import db
from ..models import Inventory, Product, Store
from ..time_utils import utcnow
from ..validation import (
    coerce_int,
    coerce_number,
    require_choice,
    require_identifier,
)
from .capacity_service import ensure_capacity, refresh_store_capacity
from .concurrency import lock_for_update, run_atomic


# =============================================================================
# LOOKUPS
# =============================================================================

def _get_store(store_id: str, *, lock: bool = False) -> Store:
    query = db.session.query(Store).filter(Store.id == store_id, Store.is_active.is_(True))
    if lock:
        query = lock_for_update(query)
    store = query.first()
    if store is None:
        raise NotFoundError("Store", store_id)
    return store


def _get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    if not product.is_active:
        raise ValidationError("Product is inactive")
    return product


def _get_inventory(inventory_id: str, *, lock: bool = False, active_only: bool = True) -> Inventory:
    query = db.session.query(Inventory).filter(Inventory.id == inventory_id)
    if active_only:
        query = query.filter(Inventory.is_active.is_(True))
    if lock:
        query = lock_for_update(query)
    record = query.first()
    if record is None:
        raise NotFoundError("Inventory", inventory_id)
    return record


def find_duplicate(store_id: str, product_id: str, location: str, *, lock: bool = False) -> Inventory | None:
    """Active standard record at exactly (store, product, location)."""
    query = db.session.query(Inventory).filter(
        Inventory.store_id == store_id,
        Inventory.product_id == product_id,
        Inventory.location == location,
        Inventory.is_active.is_(True),
        Inventory.card_container.is_(None),
    )
    if lock:
        query = lock_for_update(query)
    return query.order_by(Inventory.created_at.asc()).first()


def find_at_different_location(store_id: str, product_id: str, location: str) -> Inventory | None:
    return find_duplicate(store_id, product_id, other_location(location))


def find_matching_container(store_id: str, container: dict, location: str) -> Inventory | None:
    """Active container at the store with the same name, type and location."""
    candidates = (
        db.session.query(Inventory)
        .filter(
            Inventory.store_id == store_id,
            Inventory.location == location,
            Inventory.is_active.is_(True),
            Inventory.card_container.isnot(None),
        )
        .all()
    )
    for candidate in candidates:
        doc = candidate.card_container or {}
        if (
            doc.get("container_name") == container.get("container_name")
            and doc.get("container_type") == container.get("container_type")
        ):
            return candidate
    return None


# =============================================================================
# CARD LIST HELPERS
# =============================================================================

def normalize_card_items(items, *, field: str = "card_inventory") -> list[dict]:
    """Validate [{product_id, quantity>=1}] and collapse repeated products."""
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError(f"{field} must be a list")

    merged: dict[str, int] = {}
    for entry in items:
        if not isinstance(entry, dict):
            raise ValidationError(f"{field} entries must be objects")
        product_id = require_identifier(entry.get("product_id"), "card product ID")
        quantity = coerce_int(entry.get("quantity"), f"{field}.quantity", minimum=1)
        merged[product_id] = merged.get(product_id, 0) + quantity
    return [{"product_id": pid, "quantity": qty} for pid, qty in merged.items()]


def add_cards(current: list[dict], incoming: list[dict]) -> list[dict]:
    totals = {card["product_id"]: card["quantity"] for card in current}
    for card in incoming:
        totals[card["product_id"]] = totals.get(card["product_id"], 0) + card["quantity"]
    return [{"product_id": pid, "quantity": qty} for pid, qty in totals.items()]


def remove_cards(current: list[dict], outgoing: list[dict]) -> list[dict]:
    """Subtract card quantities; entries reaching zero are dropped. Caller checks sufficiency."""
    totals = {card["product_id"]: card["quantity"] for card in current}
    for card in outgoing:
        totals[card["product_id"]] = totals.get(card["product_id"], 0) - card["quantity"]
    return [{"product_id": pid, "quantity": qty} for pid, qty in totals.items() if qty > 0]


def with_cards(container: dict, cards: list[dict]) -> dict:
    """Copy of a container document with its card list replaced."""
    doc = dict(container)
    doc["card_inventory"] = cards
    return doc


def _require_card_products(cards: list[dict]) -> None:
    for card in cards:
        product = db.session.get(Product, card["product_id"])
        if product is None:
            raise NotFoundError("Product", card["product_id"])
        if not product.is_single_card:
            raise ValidationError(f"Product {product.sku} is not a single card")


# =============================================================================
# DUPLICATE / PLACEMENT ADVISOR
# =============================================================================

def _summary(record: Inventory | None) -> dict | None:
    if record is None:
        return None
    return {
        "id": record.id,
        "location": record.location,
        "quantity": record.quantity,
        "product_name": record.product.name if record.product else None,
    }


def check_duplicate(store_id, product_id, location) -> dict:
    """
    Pre-flight check before creating inventory. Reports an active record at
    the exact (store, product, location) and one for the same product at the
    store's other location, so the caller can choose merge, new or relocate.
    Never mutates.
    """
    if not store_id or not product_id or not location:
        raise ValidationError("Store ID, Product ID, and location are required")
    store_id = require_identifier(store_id, "store ID")
    product_id = require_identifier(product_id, "product ID")
    location = require_choice(location, "location", LOCATIONS)

    return {
        "exact_match": _summary(find_duplicate(store_id, product_id, location)),
        "different_location": _summary(find_at_different_location(store_id, product_id, location)),
    }


# =============================================================================
# RECORD MANAGER
# =============================================================================

def create_inventory(
    *,
    store_id,
    product_id,
    quantity,
    location,
    min_stock_level=None,
    notes: str | None = None,
) -> dict:
    """
    Create a standard inventory record, or merge into the active record at the
    same (store, product, location).

    Returns {"inventory": Inventory, "merged": bool, "message": str}.

    Raises:
        ValidationError: malformed input
        NotFoundError: store or product does not exist
        CapacityExceededError: required space > available space
    """
    if store_id is None or product_id is None or quantity is None or location is None:
        raise ValidationError("Missing required fields")
    store_id = require_identifier(store_id, "store ID")
    product_id = require_identifier(product_id, "product ID")
    quantity = coerce_int(quantity, "quantity", minimum=0)
    location = require_choice(location, "location", LOCATIONS)
    if min_stock_level is not None:
        min_stock_level = coerce_int(min_stock_level, "min_stock_level", minimum=0)

    def _op():
        store = _get_store(store_id, lock=True)
        product = _get_product(product_id)

        existing = find_duplicate(store_id, product_id, location, lock=True)
        if existing is not None:
            new_quantity = existing.quantity + quantity
            space_change = product.unit_size * (new_quantity - existing.quantity)
            ensure_capacity(store, space_change, additional=True)

            existing.quantity = new_quantity
            if min_stock_level is not None and min_stock_level > (existing.min_stock_level or 0):
                existing.min_stock_level = min_stock_level
            if notes:
                existing.notes = notes
            if quantity > 0:
                existing.last_restocked = utcnow()
            db.session.flush()

            refresh_store_capacity(store_id)
            return {
                "inventory": existing,
                "merged": True,
                "message": f"Inventory updated - added {quantity} units to existing stock",
            }

        ensure_capacity(store, product.unit_size * quantity)

        record = Inventory(
            store_id=store_id,
            product_id=product_id,
            quantity=quantity,
            location=location,
            min_stock_level=min_stock_level or 0,
            notes=notes,
            last_restocked=utcnow() if quantity > 0 else None,
        )
        db.session.add(record)
        db.session.flush()

        refresh_store_capacity(store_id)
        return {"inventory": record, "merged": False, "message": "Inventory created successfully"}

    return run_atomic(_op)


def create_card_container(
    *,
    store_id,
    container_type,
    container_name,
    location,
    container_unit_size=0,
    card_inventory=None,
    min_stock_level=None,
    notes: str | None = None,
) -> Inventory:
    """
    Create a card container (display case, bulk box, bulk bin). Only the
    container's own footprint counts against store capacity.
    """
    store_id = require_identifier(store_id, "store ID")
    container_type = require_choice(container_type, "container_type", CONTAINER_TYPES)
    container_name = str(container_name or "").strip()
    if not container_name:
        raise ValidationError("container_name is required")
    location = require_choice(location, "location", LOCATIONS)
    container_unit_size = coerce_number(
        container_unit_size if container_unit_size is not None else 0,
        "container_unit_size",
        minimum=0,
    )
    cards = normalize_card_items(card_inventory)
    if min_stock_level is not None:
        min_stock_level = coerce_int(min_stock_level, "min_stock_level", minimum=0)

    def _op():
        store = _get_store(store_id, lock=True)
        _require_card_products(cards)
        ensure_capacity(store, container_unit_size)

        record = Inventory(
            store_id=store_id,
            card_container={
                "container_type": container_type,
                "container_name": container_name,
                "container_unit_size": container_unit_size,
                "card_inventory": cards,
            },
            location=location,
            min_stock_level=min_stock_level or 0,
            notes=notes,
            last_restocked=utcnow() if cards else None,
        )
        db.session.add(record)
        db.session.flush()

        refresh_store_capacity(store_id)
        return record

    return run_atomic(_op)


def update_card_container(
    inventory_id,
    *,
    container_name=None,
    container_unit_size=None,
    card_inventory=None,
) -> Inventory:
    """Rename, resize or restock a container. Growing the footprint is capacity-checked."""
    inventory_id = require_identifier(inventory_id, "inventory ID")
    if container_unit_size is not None:
        container_unit_size = coerce_number(container_unit_size, "container_unit_size", minimum=0)
    cards = normalize_card_items(card_inventory) if card_inventory is not None else None

    def _op():
        record = _get_inventory(inventory_id, lock=True)
        if not record.is_card_container:
            raise ValidationError("Inventory record is not a card container")

        doc = dict(record.card_container)
        if container_unit_size is not None:
            growth = container_unit_size - (doc.get("container_unit_size") or 0)
            ensure_capacity(_get_store(record.store_id, lock=True), growth, additional=True)
            doc["container_unit_size"] = container_unit_size
        if container_name is not None:
            name = str(container_name).strip()
            if not name:
                raise ValidationError("container_name cannot be blank")
            doc["container_name"] = name
        if cards is not None:
            _require_card_products(cards)
            doc["card_inventory"] = cards
            record.last_restocked = utcnow()

        record.card_container = doc
        db.session.flush()

        refresh_store_capacity(record.store_id)
        return record

    return run_atomic(_op)


def update_inventory(
    inventory_id,
    *,
    quantity=None,
    location=None,
    min_stock_level=None,
    notes: str | None = None,
) -> Inventory:
    """
    Update a standard record. A quantity change is checked against capacity
    using the product's current unit size and the record's current quantity.
    """
    inventory_id = require_identifier(inventory_id, "inventory ID")
    if quantity is not None:
        quantity = coerce_int(quantity, "quantity", minimum=0)
    if location is not None:
        location = require_choice(location, "location", LOCATIONS)
    if min_stock_level is not None:
        min_stock_level = coerce_int(min_stock_level, "min_stock_level", minimum=0)

    def _op():
        record = _get_inventory(inventory_id, lock=True)

        if quantity is not None and record.is_card_container:
            raise ValidationError("Card containers have no quantity; update their cards instead")

        if quantity is not None and quantity != record.quantity:
            store = _get_store(record.store_id, lock=True)
            unit_size = record.product.unit_size if record.product else 0
            space_change = unit_size * (quantity - record.quantity)
            ensure_capacity(store, space_change, additional=True)
            if quantity > record.quantity:
                record.last_restocked = utcnow()
            record.quantity = quantity

        if location is not None and location != record.location:
            if not record.is_card_container:
                clash = find_duplicate(record.store_id, record.product_id, location)
                if clash is not None and clash.id != record.id:
                    raise ValidationError(
                        f"Inventory for this product already exists at the {location} location"
                    )
            record.location = location

        if min_stock_level is not None:
            record.min_stock_level = min_stock_level
        if notes is not None:
            record.notes = notes

        db.session.flush()
        refresh_store_capacity(record.store_id)
        return record

    return run_atomic(_op)


def delete_inventory(inventory_id) -> Inventory:
    """Soft delete; the store's capacity no longer counts the record."""
    inventory_id = require_identifier(inventory_id, "inventory ID")

    def _op():
        record = _get_inventory(inventory_id, lock=True)
        record.is_active = False
        db.session.flush()
        refresh_store_capacity(record.store_id)
        return record

    return run_atomic(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_inventory(inventory_id) -> Inventory:
    inventory_id = require_identifier(inventory_id, "inventory ID")
    return _get_inventory(inventory_id)


def list_inventory(location: str | None = None) -> list[Inventory]:
    query = db.session.query(Inventory).filter(Inventory.is_active.is_(True))
    if location in LOCATIONS:
        query = query.filter(Inventory.location == location)
    return query.order_by(Inventory.store_id.asc(), Inventory.location.asc(), Inventory.created_at.desc()).all()


def list_store_inventory(store_id, location: str | None = None) -> list[Inventory]:
    store_id = require_identifier(store_id, "store ID")
    query = db.session.query(Inventory).filter(
        Inventory.store_id == store_id,
        Inventory.is_active.is_(True),
    )
    if location in LOCATIONS:
        query = query.filter(Inventory.location == location)
    return query.order_by(Inventory.location.asc(), Inventory.created_at.desc()).all()


def find_low_stock(store_id=None) -> list[Inventory]:
    """Standard records whose quantity has dropped below their min_stock_level."""
    query = db.session.query(Inventory).filter(
        Inventory.is_active.is_(True),
        Inventory.card_container.is_(None),
        Inventory.quantity < Inventory.min_stock_level,
    )
    if store_id is not None:
        query = query.filter(Inventory.store_id == require_identifier(store_id, "store ID"))
    return query.order_by(Inventory.quantity.asc()).all()


def find_containers_with_card(product_id, store_id=None) -> list[Inventory]:
    product_id = require_identifier(product_id, "product ID")
    query = db.session.query(Inventory).filter(
        Inventory.is_active.is_(True),
        Inventory.card_container.isnot(None),
    )
    if store_id is not None:
        query = query.filter(Inventory.store_id == require_identifier(store_id, "store ID"))

    return [
        record
        for record in query.order_by(Inventory.store_id.asc(), Inventory.location.asc()).all()
        if record.card_quantity(product_id) > 0
    ]
