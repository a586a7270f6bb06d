"""
Role-based access policy.

WHY: Every role comparison in the service layer reads these tables; routes
and services never compare roles to decide store access themselves.

Each operation maps a role to a scope:
- SCOPE_GLOBAL: the role may act on any store
- SCOPE_ATTACHED: the actor's assigned store must be one of the stores in
  the operation's context
Roles missing from an operation's entry are denied.
"""
from __future__ import annotations

from .constants import (
    ROLE_EMPLOYEE,
    ROLE_PARTNER,
    ROLE_STORE_MANAGER,
    TRANSFER_STATUS_CLOSED,
    TRANSFER_STATUS_COMPLETE,
    TRANSFER_STATUS_OPEN,
    TRANSFER_STATUS_REQUESTED,
    TRANSFER_STATUS_SENT,
)

SCOPE_GLOBAL = "global"
SCOPE_ATTACHED = "attached"


# =============================================================================
# OPERATIONS
# =============================================================================

class Operation:
    INVENTORY_VIEW_ALL = "inventory.view_all"
    INVENTORY_VIEW_STORE = "inventory.view_store"
    INVENTORY_MANAGE = "inventory.manage"

    TRANSFER_CREATE = "transfer.create"
    TRANSFER_VIEW = "transfer.view"
    TRANSFER_DELETE = "transfer.delete"

    STORE_VIEW = "store.view"
    STORE_UPDATE = "store.update"


OPERATION_POLICIES: dict[str, dict[str, str]] = {
    Operation.INVENTORY_VIEW_ALL: {
        ROLE_PARTNER: SCOPE_GLOBAL,
    },
    Operation.INVENTORY_VIEW_STORE: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
        ROLE_EMPLOYEE: SCOPE_ATTACHED,
    },
    Operation.INVENTORY_MANAGE: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
    },
    Operation.TRANSFER_CREATE: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
    },
    Operation.TRANSFER_VIEW: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
    },
    Operation.TRANSFER_DELETE: {
        ROLE_PARTNER: SCOPE_GLOBAL,
    },
    Operation.STORE_VIEW: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
        ROLE_EMPLOYEE: SCOPE_ATTACHED,
    },
    Operation.STORE_UPDATE: {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SCOPE_ATTACHED,
    },
}


# =============================================================================
# TRANSFER TRANSITIONS
# =============================================================================

# Which side of the request a store manager must be attached to.
SIDE_FROM = "from"
SIDE_TO = "to"

# (current, new) -> {role: scope}; scope is SCOPE_GLOBAL or a request side.
# Closing is partner-only from every state it is reachable from, including
# complete.
TRANSITION_POLICIES: dict[tuple[str, str], dict[str, str]] = {
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_REQUESTED): {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SIDE_TO,
    },
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_SENT): {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SIDE_FROM,
    },
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_COMPLETE): {
        ROLE_PARTNER: SCOPE_GLOBAL,
        ROLE_STORE_MANAGER: SIDE_TO,
    },
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_CLOSED): {ROLE_PARTNER: SCOPE_GLOBAL},
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_CLOSED): {ROLE_PARTNER: SCOPE_GLOBAL},
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_CLOSED): {ROLE_PARTNER: SCOPE_GLOBAL},
    (TRANSFER_STATUS_COMPLETE, TRANSFER_STATUS_CLOSED): {ROLE_PARTNER: SCOPE_GLOBAL},
}


def is_operation_allowed(operation: str, role: str | None, attached: bool) -> bool:
    """Pure policy lookup: may this role perform the operation given its store attachment?"""
    scope = OPERATION_POLICIES.get(operation, {}).get(role)
    if scope == SCOPE_GLOBAL:
        return True
    if scope == SCOPE_ATTACHED:
        return attached
    return False


def is_transition_authorized(
    current_status: str,
    new_status: str,
    role: str | None,
    store_sides: frozenset[str],
) -> bool:
    """
    Pure policy lookup for a status change.

    store_sides holds the request sides (SIDE_FROM / SIDE_TO) the actor's
    store is attached to; empty when the actor's store is neither.
    """
    scope = TRANSITION_POLICIES.get((current_status, new_status), {}).get(role)
    if scope is None:
        return False
    if scope == SCOPE_GLOBAL:
        return True
    return scope in store_sides
