# Overview: Single policy-evaluation entry point for actor/operation/resource checks.

"""
Authorization checks for the service layer.

DESIGN PRINCIPLES:
- Fail closed: unknown roles, inactive users and unattached managers are denied
- Callers pass the resource context (store ids or the transfer request); the
  role matrix itself lives in cardstock.permissions
"""
from __future__ import annotations

from typing import Iterable

from ..exceptions import AuthorizationError
from ..models import TransferRequest, User
from ..permissions import (
    SIDE_FROM,
    SIDE_TO,
    is_operation_allowed,
    is_transition_authorized,
)


def _attached_to(actor: User, store_ids: Iterable[str | None]) -> bool:
    if actor.assigned_store_id is None:
        return False
    return actor.assigned_store_id in {sid for sid in store_ids if sid}


def can(actor: User | None, operation: str, *, store_ids: Iterable[str | None] = ()) -> bool:
    if actor is None or not actor.is_active:
        return False
    return is_operation_allowed(operation, actor.role, _attached_to(actor, store_ids))


def authorize(
    actor: User | None,
    operation: str,
    *,
    store_ids: Iterable[str | None] = (),
    message: str = "Insufficient permissions",
) -> None:
    """Raise AuthorizationError unless the actor may perform operation on the given stores."""
    if not can(actor, operation, store_ids=store_ids):
        raise AuthorizationError(message)


def store_sides(actor: User, transfer: TransferRequest) -> frozenset[str]:
    """Which ends of the request the actor's assigned store sits on."""
    sides = set()
    if actor.assigned_store_id is not None:
        if actor.assigned_store_id == transfer.from_store_id:
            sides.add(SIDE_FROM)
        if actor.assigned_store_id == transfer.to_store_id:
            sides.add(SIDE_TO)
    return frozenset(sides)


def can_transition(actor: User | None, transfer: TransferRequest, new_status: str) -> bool:
    if actor is None or not actor.is_active:
        return False
    return is_transition_authorized(
        transfer.status, new_status, actor.role, store_sides(actor, transfer)
    )


def authorize_transition(actor: User | None, transfer: TransferRequest, new_status: str) -> None:
    if not can_transition(actor, transfer, new_status):
        raise AuthorizationError(
            f"Not permitted to move request {transfer.request_number} "
            f"from {transfer.status} to {new_status}"
        )
