"""
Authorization matrix: pure policy lookups plus the actor-aware entry point.
"""

import pytest

from cardstock.constants import (
    ROLE_EMPLOYEE,
    ROLE_PARTNER,
    ROLE_STORE_MANAGER,
    TRANSFER_STATUS_CLOSED,
    TRANSFER_STATUS_COMPLETE,
    TRANSFER_STATUS_OPEN,
    TRANSFER_STATUS_REQUESTED,
    TRANSFER_STATUS_SENT,
)
from cardstock.exceptions import AuthorizationError
from cardstock.models import TransferRequest
from cardstock.permissions import (
    SIDE_FROM,
    SIDE_TO,
    Operation,
    is_operation_allowed,
    is_transition_authorized,
)
from cardstock.services import permission_service


@pytest.mark.parametrize("role, attached, allowed", [
    (ROLE_PARTNER, False, True),
    (ROLE_STORE_MANAGER, True, True),
    (ROLE_STORE_MANAGER, False, False),
    (ROLE_EMPLOYEE, True, False),
    ("intern", True, False),
    (None, True, False),
])
def test_inventory_manage_policy(role, attached, allowed):
    assert is_operation_allowed(Operation.INVENTORY_MANAGE, role, attached) is allowed


def test_employees_may_view_their_store_only():
    assert is_operation_allowed(Operation.INVENTORY_VIEW_STORE, ROLE_EMPLOYEE, True)
    assert not is_operation_allowed(Operation.INVENTORY_VIEW_STORE, ROLE_EMPLOYEE, False)
    assert not is_operation_allowed(Operation.INVENTORY_VIEW_ALL, ROLE_EMPLOYEE, True)


def test_unknown_operation_is_denied():
    assert not is_operation_allowed("inventory.teleport", ROLE_PARTNER, True)


@pytest.mark.parametrize("current, new, sides, allowed", [
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_REQUESTED, {SIDE_TO}, True),
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_REQUESTED, {SIDE_FROM}, False),
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_SENT, {SIDE_FROM}, True),
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_SENT, {SIDE_TO}, False),
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_COMPLETE, {SIDE_TO}, True),
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_COMPLETE, {SIDE_FROM}, False),
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_CLOSED, {SIDE_FROM, SIDE_TO}, False),
    (TRANSFER_STATUS_COMPLETE, TRANSFER_STATUS_CLOSED, {SIDE_TO}, False),
])
def test_manager_transitions(current, new, sides, allowed):
    assert is_transition_authorized(current, new, ROLE_STORE_MANAGER, frozenset(sides)) is allowed


@pytest.mark.parametrize("current, new", [
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_REQUESTED),
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_SENT),
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_COMPLETE),
    (TRANSFER_STATUS_OPEN, TRANSFER_STATUS_CLOSED),
    (TRANSFER_STATUS_REQUESTED, TRANSFER_STATUS_CLOSED),
    (TRANSFER_STATUS_SENT, TRANSFER_STATUS_CLOSED),
    (TRANSFER_STATUS_COMPLETE, TRANSFER_STATUS_CLOSED),
])
def test_partner_may_take_every_legal_step(current, new):
    assert is_transition_authorized(current, new, ROLE_PARTNER, frozenset())


def test_employee_may_take_no_step():
    assert not is_transition_authorized(
        TRANSFER_STATUS_OPEN, TRANSFER_STATUS_REQUESTED, ROLE_EMPLOYEE, frozenset({SIDE_TO})
    )


class TestPermissionService:
    def test_inactive_actor_fails_closed(self, make_store, make_user):
        store = make_store()
        user = make_user(ROLE_PARTNER, is_active=False)
        assert not permission_service.can(user, Operation.INVENTORY_MANAGE, store_ids=(store.id,))

    def test_missing_actor_fails_closed(self):
        assert not permission_service.can(None, Operation.INVENTORY_VIEW_ALL)

    def test_unattached_manager_is_denied(self, make_user):
        manager = make_user(ROLE_STORE_MANAGER)
        assert not permission_service.can(manager, Operation.INVENTORY_MANAGE, store_ids=(None,))

    def test_authorize_raises_with_message(self, two_stores, make_user):
        store_a, store_b = two_stores
        manager = make_user(ROLE_STORE_MANAGER, store_a)

        permission_service.authorize(manager, Operation.INVENTORY_MANAGE, store_ids=(store_a.id,))
        with pytest.raises(AuthorizationError, match="not yours"):
            permission_service.authorize(
                manager, Operation.INVENTORY_MANAGE, store_ids=(store_b.id,), message="not yours",
            )

    def test_store_sides(self, two_stores, actors):
        store_a, store_b = two_stores
        transfer = TransferRequest(from_store_id=store_a.id, to_store_id=store_b.id)

        assert permission_service.store_sides(actors["manager_a"], transfer) == {SIDE_FROM}
        assert permission_service.store_sides(actors["manager_b"], transfer) == {SIDE_TO}
        assert permission_service.store_sides(actors["partner"], transfer) == frozenset()

    def test_authorize_transition(self, two_stores, actors):
        store_a, store_b = two_stores
        transfer = TransferRequest(
            request_number="TR-20260101-0001",
            from_store_id=store_a.id,
            to_store_id=store_b.id,
            status=TRANSFER_STATUS_OPEN,
        )

        permission_service.authorize_transition(actors["manager_b"], transfer, TRANSFER_STATUS_REQUESTED)
        with pytest.raises(AuthorizationError, match="TR-20260101-0001"):
            permission_service.authorize_transition(actors["manager_a"], transfer, TRANSFER_STATUS_REQUESTED)
