# Overview: Service-layer operations for inter-store transfer requests; encapsulates business logic and database work.

# backend/cardstock/services/transfer_service.py
"""
Transfer request workflow (authoritative)

States: open -> requested -> sent -> complete, with closed reachable from
every other state. Two independent tables drive a status change:

- ALLOWED_TRANSITIONS: which (current, new) pairs exist at all. Checked
  first; a pair outside it is an InvalidStateTransitionError.
- permission_service.authorize_transition: which actor may take a legal
  pair. Checked second; a denial is an AuthorizationError.

Inventory only moves on three edges (_COMPENSATING_ACTIONS):

- requested -> sent:  deduct every item from the source store
- sent -> complete:   credit every item to the destination store
- sent -> closed:     return every item to the source store

The status change, the inventory moves, the attribution stamps and the
history entry are committed as one unit; if any item fails, nothing is
written and the request keeps its old status.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..constants import (
    LOCATION_BACK,
    LOCATION_FLOOR,
    MAX_CLOSE_REASON_LENGTH,
    MAX_TRANSFER_NOTES_LENGTH,
    REQUEST_NUMBER_PREFIX,
    ROLE_PARTNER,
    TRANSFER_STATUS_CLOSED,
    TRANSFER_STATUS_COMPLETE,
    TRANSFER_STATUS_OPEN,
    TRANSFER_STATUS_REQUESTED,
    TRANSFER_STATUS_SENT,
    TRANSFER_STATUSES,
)
from ..exceptions import (
    InsufficientQuantityError,
    InvalidStateTransitionError,
    NotFoundError,
    StructuralInvariantError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    Inventory,
    Product,
    Store,
    TransferRequest,
    TransferRequestItem,
    TransferStatusHistory,
    User,
)
from ..permissions import Operation
from ..time_utils import utcnow
from ..validation import coerce_int, require_choice, require_identifier
from . import permission_service
from .capacity_service import ensure_capacity, refresh_store_capacity
from .concurrency import lock_for_update, run_atomic
from .inventory_service import (
    add_cards,
    find_duplicate,
    find_matching_container,
    normalize_card_items,
    remove_cards,
    with_cards,
)


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    TRANSFER_STATUS_OPEN: frozenset({TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_CLOSED}),
    TRANSFER_STATUS_REQUESTED: frozenset({TRANSFER_STATUS_SENT, TRANSFER_STATUS_CLOSED}),
    TRANSFER_STATUS_SENT: frozenset({TRANSFER_STATUS_COMPLETE, TRANSFER_STATUS_CLOSED}),
    TRANSFER_STATUS_COMPLETE: frozenset({TRANSFER_STATUS_CLOSED}),
    TRANSFER_STATUS_CLOSED: frozenset(),
}

# Statuses a request may be deleted from
DELETABLE_STATUSES = frozenset({TRANSFER_STATUS_OPEN, TRANSFER_STATUS_CLOSED})

# status -> (actor column, timestamp column)
_STATUS_STAMPS = {
    TRANSFER_STATUS_REQUESTED: ("requested_by_user_id", "requested_at"),
    TRANSFER_STATUS_SENT: ("sent_by_user_id", "sent_at"),
    TRANSFER_STATUS_COMPLETE: ("completed_by_user_id", "completed_at"),
    TRANSFER_STATUS_CLOSED: ("closed_by_user_id", "closed_at"),
}


def can_transition_to(current_status: str, new_status: str) -> bool:
    """Structural check only; says nothing about who may do it."""
    return new_status in ALLOWED_TRANSITIONS.get(current_status, frozenset())


# =============================================================================
# REQUEST NUMBERS
# =============================================================================

def generate_request_number(now=None) -> str:
    """
    TR-YYYYMMDD-NNNN, where NNNN is one past the highest sequence already
    issued for that UTC day. The sequence restarts at 0001 every day.
    """
    now = now or utcnow()
    prefix = f"{REQUEST_NUMBER_PREFIX}-{now.strftime('%Y%m%d')}-"

    numbers = (
        db.session.query(TransferRequest.request_number)
        .filter(TransferRequest.request_number.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (number,) in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{prefix}{highest + 1:04d}"


# =============================================================================
# LOOKUPS
# =============================================================================

def _load_request(request_id: str, *, lock: bool = False) -> TransferRequest:
    query = db.session.query(TransferRequest).filter(
        TransferRequest.id == request_id,
        TransferRequest.is_active.is_(True),
    )
    if lock:
        query = lock_for_update(query)
    transfer = query.first()
    if transfer is None:
        raise NotFoundError("Transfer request", request_id)
    return transfer


def _require_store(store_id: str, label: str) -> Store:
    store = db.session.query(Store).filter(Store.id == store_id, Store.is_active.is_(True)).first()
    if store is None:
        raise NotFoundError(label, store_id)
    return store


def _load_source_record(inventory_id: str, *, lock: bool = True) -> Inventory | None:
    query = db.session.query(Inventory).filter(Inventory.id == inventory_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def _product_name(product_id: str | None) -> str | None:
    if product_id is None:
        return None
    product = db.session.get(Product, product_id)
    return product.name if product else None


def _destination_enforced() -> bool:
    return bool(current_app.config.get("TRANSFER_ENFORCE_DESTINATION_CAPACITY", False))


# =============================================================================
# ITEM VALIDATION
# =============================================================================

def _build_items(from_store_id: str, items) -> list[TransferRequestItem]:
    """Validate requested items against the source store's current stock."""
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")

    built = []
    for position, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        inventory_id = require_identifier(raw.get("inventory_id"), "inventory ID")

        record = (
            db.session.query(Inventory)
            .filter(Inventory.id == inventory_id, Inventory.is_active.is_(True))
            .first()
        )
        if record is None:
            raise NotFoundError("Inventory", inventory_id)
        if record.store_id != from_store_id:
            raise ValidationError(f"Inventory {inventory_id} does not belong to the source store")

        if record.is_card_container:
            card_items = normalize_card_items(raw.get("card_items"), field="card_items")
            if not card_items:
                raise ValidationError("card_items are required when transferring from a card container")
            for card in card_items:
                available = record.card_quantity(card["product_id"])
                if card["quantity"] > available:
                    raise InsufficientQuantityError(
                        _product_name(card["product_id"]), card["quantity"], available
                    )
            total = sum(card["quantity"] for card in card_items)
            requested = raw.get("requested_quantity")
            if requested is not None and coerce_int(requested, "requested_quantity", minimum=1) != total:
                raise ValidationError(
                    f"requested_quantity must equal the card_items total ({total}) for a card container"
                )
            built.append(TransferRequestItem(
                position=position,
                inventory_id=record.id,
                product_id=None,
                requested_quantity=total,
                card_items=card_items,
            ))
            continue

        requested = coerce_int(raw.get("requested_quantity"), "requested_quantity", minimum=1)
        if requested > record.quantity:
            raise InsufficientQuantityError(
                record.product.name if record.product else None, requested, record.quantity
            )
        built.append(TransferRequestItem(
            position=position,
            inventory_id=record.id,
            product_id=record.product_id,
            requested_quantity=requested,
        ))

    return built


def _append_history(transfer: TransferRequest, status: str, actor: User, when) -> None:
    transfer.status_history.append(TransferStatusHistory(
        position=len(transfer.status_history),
        status=status,
        changed_by_user_id=actor.id,
        changed_at=when,
    ))


# =============================================================================
# COMPENSATING ACTIONS
# =============================================================================

def _deduct_from_source(transfer: TransferRequest) -> None:
    """requested -> sent: remove every item from the source store."""
    for item in transfer.items:
        record = _load_source_record(item.inventory_id)

        if item.card_items:
            cards = record.card_inventory if record is not None and record.is_active else []
            counts = {card["product_id"]: card["quantity"] for card in cards}
            for card in item.card_items:
                available = counts.get(card["product_id"], 0)
                if card["quantity"] > available:
                    raise InsufficientQuantityError(
                        _product_name(card["product_id"]), card["quantity"], available
                    )
            record.card_container = with_cards(record.card_container, remove_cards(cards, item.card_items))
            continue

        available = record.quantity if record is not None and record.is_active else 0
        new_quantity = available - item.requested_quantity
        if new_quantity < 0:
            raise InsufficientQuantityError(
                _product_name(item.product_id), item.requested_quantity, available
            )
        record.quantity = new_quantity
        if new_quantity == 0:
            record.is_active = False

    db.session.flush()
    refresh_store_capacity(transfer.from_store_id)


def _credit_destination(transfer: TransferRequest) -> None:
    """sent -> complete: add every item to the destination store."""
    store = db.session.get(Store, transfer.to_store_id)
    enforce = _destination_enforced()
    now = utcnow()

    for item in transfer.items:
        source = _load_source_record(item.inventory_id, lock=False)
        location = source.location if source is not None else LOCATION_FLOOR

        if item.card_items:
            template = source.card_container if source is not None else {}
            target = find_matching_container(transfer.to_store_id, template, location)
            if target is not None:
                target.card_container = with_cards(
                    target.card_container, add_cards(target.card_inventory, item.card_items)
                )
                target.last_restocked = now
                continue

            unit_size = template.get("container_unit_size") or 0
            if enforce:
                ensure_capacity(store, unit_size, additional=True)
            db.session.add(Inventory(
                store_id=transfer.to_store_id,
                card_container={
                    "container_type": template.get("container_type"),
                    "container_name": template.get("container_name"),
                    "container_unit_size": unit_size,
                    "card_inventory": [dict(card) for card in item.card_items],
                },
                location=location,
                last_restocked=now,
            ))
            db.session.flush()
            continue

        product = db.session.get(Product, item.product_id)
        if enforce:
            ensure_capacity(store, (product.unit_size if product else 0) * item.requested_quantity, additional=True)

        target = find_duplicate(transfer.to_store_id, item.product_id, location, lock=True)
        if target is not None:
            target.quantity += item.requested_quantity
            target.last_restocked = now
        else:
            db.session.add(Inventory(
                store_id=transfer.to_store_id,
                product_id=item.product_id,
                quantity=item.requested_quantity,
                location=location,
                last_restocked=now,
            ))
        db.session.flush()

    db.session.flush()
    refresh_store_capacity(transfer.to_store_id)


def _return_to_source(transfer: TransferRequest) -> None:
    """sent -> closed: put every item back where it was taken from."""
    now = utcnow()

    for item in transfer.items:
        record = _load_source_record(item.inventory_id)

        if item.card_items:
            if record is None:
                # Container row is gone; nothing to attach the cards to.
                continue
            record.card_container = with_cards(
                record.card_container, add_cards(record.card_inventory, item.card_items)
            )
            record.is_active = True
            continue

        if record is None:
            db.session.add(Inventory(
                store_id=transfer.from_store_id,
                product_id=item.product_id,
                quantity=item.requested_quantity,
                location=LOCATION_BACK,
                last_restocked=now,
            ))
            db.session.flush()
            continue

        if record.is_active:
            record.quantity += item.requested_quantity
            continue

        # Soft-deleted at send time. If a new active record has taken the slot
        # since, that record is credited and this row stays deleted, rather
        # than reactivating it beside the newer one.
        replacement = find_duplicate(transfer.from_store_id, item.product_id, record.location, lock=True)
        if replacement is not None:
            replacement.quantity += item.requested_quantity
        else:
            record.quantity = item.requested_quantity
            record.is_active = True
        db.session.flush()

    db.session.flush()
    refresh_store_capacity(transfer.from_store_id)


_COMPENSATING_ACTIONS = {
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_SENT): _deduct_from_source,
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_COMPLETE): _credit_destination,
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_CLOSED): _return_to_source,
}


# =============================================================================
# OPERATIONS
# =============================================================================

def create_transfer_request(actor: User, from_store_id, to_store_id, items, notes: str | None = None) -> TransferRequest:
    """
    Create a request in `open` status.

    The actor must be a partner or a manager attached to either store. Items
    are checked against the source stock now, and again when the request is
    sent.
    """
    if not from_store_id or not to_store_id:
        raise ValidationError("Source and destination stores are required")
    from_store_id = require_identifier(from_store_id, "source store ID")
    to_store_id = require_identifier(to_store_id, "destination store ID")
    if from_store_id == to_store_id:
        raise StructuralInvariantError("Cannot transfer inventory to the same store")
    if notes is not None and len(notes) > MAX_TRANSFER_NOTES_LENGTH:
        raise ValidationError(f"Notes cannot exceed {MAX_TRANSFER_NOTES_LENGTH} characters")

    permission_service.authorize(
        actor,
        Operation.TRANSFER_CREATE,
        store_ids=(from_store_id, to_store_id),
        message="You can only create transfer requests involving your assigned store",
    )

    def _op():
        _require_store(from_store_id, "Source store")
        _require_store(to_store_id, "Destination store")

        now = utcnow()
        transfer = TransferRequest(
            request_number=generate_request_number(now),
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            status=TRANSFER_STATUS_OPEN,
            notes=notes,
            created_by_user_id=actor.id,
        )
        transfer.items = _build_items(from_store_id, items)
        _append_history(transfer, TRANSFER_STATUS_OPEN, actor, now)

        db.session.add(transfer)
        db.session.flush()
        return transfer

    return run_atomic(_op)


def _visible_query(actor: User):
    query = db.session.query(TransferRequest).filter(TransferRequest.is_active.is_(True))
    if actor.role == ROLE_PARTNER:
        return query
    return query.filter(
        or_(
            TransferRequest.from_store_id == actor.assigned_store_id,
            TransferRequest.to_store_id == actor.assigned_store_id,
        )
    )


def list_transfer_requests(actor: User, status: str | None = None, store_id=None) -> list[TransferRequest]:
    """Partners see every request; managers see requests touching their store."""
    permission_service.authorize(
        actor,
        Operation.TRANSFER_VIEW,
        store_ids=() if actor is None or actor.role == ROLE_PARTNER else (actor.assigned_store_id,),
    )

    query = _visible_query(actor)
    if status is not None:
        query = query.filter(TransferRequest.status == require_choice(status, "status", TRANSFER_STATUSES))
    if store_id is not None:
        store_id = require_identifier(store_id, "store ID")
        query = query.filter(
            or_(
                TransferRequest.from_store_id == store_id,
                TransferRequest.to_store_id == store_id,
            )
        )
    return query.order_by(TransferRequest.created_at.desc(), TransferRequest.request_number.desc()).all()


def get_transfer_request(actor: User, request_id) -> TransferRequest:
    request_id = require_identifier(request_id, "transfer request ID")
    transfer = _load_request(request_id)
    permission_service.authorize(
        actor,
        Operation.TRANSFER_VIEW,
        store_ids=(transfer.from_store_id, transfer.to_store_id),
        message="You can only view transfer requests involving your assigned store",
    )
    return transfer


def update_transfer_status(actor: User, request_id, new_status, close_reason: str | None = None) -> TransferRequest:
    """
    Move a request to new_status.

    Raises:
        InvalidStateTransitionError: the pair is not in ALLOWED_TRANSITIONS
        AuthorizationError: the actor may not take this (legal) step
        InsufficientQuantityError / CapacityExceededError: a compensating
            action failed; the request keeps its current status
    """
    request_id = require_identifier(request_id, "transfer request ID")
    new_status = require_choice(new_status, "status", TRANSFER_STATUSES)
    if close_reason is not None and len(close_reason) > MAX_CLOSE_REASON_LENGTH:
        raise ValidationError(f"Close reason cannot exceed {MAX_CLOSE_REASON_LENGTH} characters")

    def _op():
        transfer = _load_request(request_id, lock=True)
        current = transfer.status

        if not can_transition_to(current, new_status):
            raise InvalidStateTransitionError(current, new_status)
        permission_service.authorize_transition(actor, transfer, new_status)

        action = _COMPENSATING_ACTIONS.get((current, new_status))
        if action is not None:
            action(transfer)

        now = utcnow()
        actor_column, time_column = _STATUS_STAMPS[new_status]
        setattr(transfer, actor_column, actor.id)
        setattr(transfer, time_column, now)
        if new_status == TRANSFER_STATUS_CLOSED and close_reason:
            transfer.close_reason = close_reason

        transfer.status = new_status
        _append_history(transfer, new_status, actor, now)
        db.session.flush()
        return transfer

    return run_atomic(_op)


def delete_transfer_request(actor: User, request_id) -> TransferRequest:
    """Partner only, and only for requests that never moved stock (open) or are finished (closed)."""
    request_id = require_identifier(request_id, "transfer request ID")
    permission_service.authorize(
        actor,
        Operation.TRANSFER_DELETE,
        message="Only partners can delete transfer requests",
    )

    def _op():
        transfer = _load_request(request_id, lock=True)
        if transfer.status not in DELETABLE_STATUSES:
            raise InvalidStateTransitionError(
                transfer.status,
                "deleted",
                f"Cannot delete a transfer request in {transfer.status} status",
            )
        transfer.is_active = False
        db.session.flush()
        return transfer

    return run_atomic(_op)


def count_by_status(actor: User, store_id=None) -> dict[str, int]:
    permission_service.authorize(
        actor,
        Operation.TRANSFER_VIEW,
        store_ids=() if actor is None or actor.role == ROLE_PARTNER else (actor.assigned_store_id,),
    )

    query = _visible_query(actor)
    if store_id is not None:
        store_id = require_identifier(store_id, "store ID")
        query = query.filter(
            or_(
                TransferRequest.from_store_id == store_id,
                TransferRequest.to_store_id == store_id,
            )
        )

    counts = {status: 0 for status in TRANSFER_STATUSES}
    rows = (
        query.with_entities(TransferRequest.status, func.count(TransferRequest.id))
        .group_by(TransferRequest.status)
        .all()
    )
    for status, count in rows:
        counts[status] = count
    return counts
