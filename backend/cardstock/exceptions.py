# backend/cardstock/exceptions.py
"""
Error taxonomy for the inventory and transfer core.

Every error carries the HTTP status the API layer answers with, plus the
values needed to render a precise message (required vs. available space,
requested vs. available quantity, current vs. requested status).
"""
from __future__ import annotations


class CardStockError(Exception):
    """Base class for domain failures surfaced to callers."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(CardStockError, ValueError):
    """400-level input problem: missing field, wrong type, malformed id."""


class NotFoundError(CardStockError):
    """A referenced store, product, inventory record or request does not resolve."""
    status_code = 404

    def __init__(self, resource: str, resource_id=None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class CapacityExceededError(CardStockError):
    def __init__(self, required: float, available: float, *, additional: bool = False):
        label = "Required additional" if additional else "Required"
        super().__init__(
            f"Insufficient capacity. {label}: {_fmt(required)}, Available: {_fmt(available)}"
        )
        self.required = required
        self.available = available


class InsufficientQuantityError(CardStockError):
    def __init__(self, product_name: str | None, requested: int, available: int):
        super().__init__(
            f"Insufficient quantity for {product_name or 'product'}. "
            f"Requested: {requested}, Available: {available}"
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidStateTransitionError(CardStockError):
    def __init__(self, current_status: str, new_status: str, message: str | None = None):
        super().__init__(message or f"Cannot transition from {current_status} to {new_status}")
        self.current_status = current_status
        self.new_status = new_status


class AuthorizationError(CardStockError):
    """Actor's role or store attachment does not permit the operation."""
    status_code = 403


class StructuralInvariantError(CardStockError):
    """A record would violate a shape rule (container XOR item, same-store transfer, card product rules)."""


class StoreCapacityConflictError(ValidationError):
    def __init__(self, max_capacity: float, current_capacity: float):
        super().__init__(
            f"Cannot set max capacity below current capacity ({_fmt(current_capacity)})"
        )
        self.max_capacity = max_capacity
        self.current_capacity = current_capacity


def _fmt(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
