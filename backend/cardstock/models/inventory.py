from __future__ import annotations

from sqlalchemy import event

from ..constants import (
    CARD_CONDITIONS,
    CARD_DETAIL_FIELDS,
    CARD_FINISHES,
    CONTAINER_TYPES,
    LOCATIONS,
    PRODUCT_SINGLE_CARD,
    PRODUCT_TYPES,
)
from ..exceptions import StructuralInvariantError
from ..extensions import db
from ..time_utils import to_utc_z
from .base import generate_id


class Product(db.Model):
    """
    Catalog entry: "what exists", not "where it is stored".

    UNIT SIZE RULE:
    - singleCard products take no space of their own (unit_size == 0); the
      container holding them is what occupies the shelf.
    - every other product type has unit_size > 0.
    card_details is present exactly when product_type is singleCard.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_type_brand", "product_type", "brand"),
        db.Index("ix_products_brand_active", "brand", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    product_type = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    brand = db.Column(db.String(120), nullable=False)

    # {"set", "card_number", "rarity", "condition", "finish"} for single cards
    card_details = db.Column(db.JSON(none_as_null=True), nullable=True)

    unit_size = db.Column(db.Float, nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    base_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Minimum order quantity when the product is only sold in bulk
    bulk_quantity = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_single_card(self) -> bool:
        return self.product_type == PRODUCT_SINGLE_CARD

    @property
    def full_name(self) -> str:
        return f"{self.brand} - {self.name}"

    @property
    def card_identifier(self) -> str | None:
        if self.is_single_card and self.card_details:
            return f"{self.name} ({self.card_details.get('set')} #{self.card_details.get('card_number')})"
        return None

    def check_invariants(self) -> None:
        if self.product_type not in PRODUCT_TYPES:
            raise StructuralInvariantError(f"Unknown product type: {self.product_type}")

        if self.unit_size is None or self.unit_size < 0:
            raise StructuralInvariantError("unit_size must be >= 0")

        if self.is_single_card:
            if self.unit_size != 0:
                raise StructuralInvariantError("Single cards must have unit_size of 0")
            if not self.card_details:
                raise StructuralInvariantError("Single cards require card_details")
            missing = [f for f in CARD_DETAIL_FIELDS if not self.card_details.get(f)]
            if missing:
                raise StructuralInvariantError(f"card_details missing: {', '.join(missing)}")
            if self.card_details["condition"] not in CARD_CONDITIONS:
                raise StructuralInvariantError(f"Invalid card condition: {self.card_details['condition']}")
            if self.card_details["finish"] not in CARD_FINISHES:
                raise StructuralInvariantError(f"Invalid card finish: {self.card_details['finish']}")
        else:
            if self.unit_size == 0:
                raise StructuralInvariantError("Non-card products must have unit_size greater than 0")
            if self.card_details:
                raise StructuralInvariantError("Non-card products cannot have card_details")

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} type={self.product_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "product_type": self.product_type,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "brand": self.brand,
            "card_details": self.card_details,
            "card_identifier": self.card_identifier,
            "unit_size": self.unit_size,
            "base_price_cents": self.base_price_cents,
            "bulk_quantity": self.bulk_quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    A physical storage unit in a store.

    Each row is EITHER a standard item (product_id + quantity) OR a card
    container (card_container document, no product_id, no quantity). The
    container document looks like:

        {
            "container_type": "display-case" | "bulk-box" | "bulk-bin",
            "container_name": "Display Case A3",
            "container_unit_size": 4,
            "card_inventory": [{"product_id": "...", "quantity": 2}, ...],
        }

    JSON columns are not mutation-tracked: always assign a new dict.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.Index("ix_inventory_store_product", "store_id", "product_id"),
        db.Index("ix_inventory_store_location", "store_id", "location"),
        db.Index("ix_inventory_store_active", "store_id", "is_active"),
        db.Index("ix_inventory_product_active", "product_id", "is_active"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    store_id = db.Column(db.String(36), db.ForeignKey("stores.id"), nullable=False, index=True)

    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=True)
    quantity = db.Column(db.Integer, nullable=True)

    card_container = db.Column(db.JSON(none_as_null=True), nullable=True)

    location = db.Column(db.String(16), nullable=False)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)
    last_restocked = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("inventory", lazy=True))
    product = db.relationship("Product")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_card_container(self) -> bool:
        return self.card_container is not None

    @property
    def card_inventory(self) -> list[dict]:
        if not self.card_container:
            return []
        return list(self.card_container.get("card_inventory") or [])

    @property
    def total_cards(self) -> int:
        return sum(card["quantity"] for card in self.card_inventory)

    @property
    def unique_card_types(self) -> int:
        return len(self.card_inventory)

    @property
    def effective_unit_size(self) -> float:
        """Space this record occupies in its store."""
        if self.is_card_container:
            return self.card_container.get("container_unit_size") or 0
        if self.product is None or not self.quantity:
            return 0
        return self.quantity * (self.product.unit_size or 0)

    def card_quantity(self, product_id: str) -> int:
        for card in self.card_inventory:
            if card["product_id"] == product_id:
                return card["quantity"]
        return 0

    def check_invariants(self) -> None:
        if self.location not in LOCATIONS:
            raise StructuralInvariantError("Location must be either 'floor' or 'back'")

        if self.is_card_container:
            if self.product_id:
                raise StructuralInvariantError(
                    "Card containers cannot have a product_id (cards are stored in card_container.card_inventory)"
                )
            if self.quantity is not None:
                raise StructuralInvariantError(
                    "Card containers cannot have a quantity (use card_container.card_inventory instead)"
                )
            _check_container_document(self.card_container)
        else:
            if not self.product_id:
                raise StructuralInvariantError("Standard inventory items must have a product_id")
            if self.quantity is None:
                raise StructuralInvariantError("Standard inventory items must have a quantity")
            if self.quantity < 0:
                raise StructuralInvariantError("Quantity cannot be negative")

        if self.min_stock_level is not None and self.min_stock_level < 0:
            raise StructuralInvariantError("Minimum stock level cannot be negative")

    def __repr__(self) -> str:
        kind = "container" if self.is_card_container else "item"
        return f"<Inventory id={self.id} {kind} store_id={self.store_id} location={self.location}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product is not None else None,
            "quantity": self.quantity,
            "card_container": self.card_container,
            "is_card_container": self.is_card_container,
            "location": self.location,
            "min_stock_level": self.min_stock_level,
            "last_restocked": to_utc_z(self.last_restocked),
            "notes": self.notes,
            "effective_unit_size": self.effective_unit_size,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if self.is_card_container:
            data["total_cards"] = self.total_cards
            data["unique_card_types"] = self.unique_card_types
        return data


def _check_container_document(container) -> None:
    if not isinstance(container, dict):
        raise StructuralInvariantError("card_container must be an object")
    if container.get("container_type") not in CONTAINER_TYPES:
        raise StructuralInvariantError(
            f"container_type must be one of: {', '.join(CONTAINER_TYPES)}"
        )
    if not str(container.get("container_name") or "").strip():
        raise StructuralInvariantError("container_name is required")
    unit_size = container.get("container_unit_size", 0)
    if unit_size is None or unit_size < 0:
        raise StructuralInvariantError("Container unit size cannot be negative")
    for card in container.get("card_inventory") or []:
        if not card.get("product_id"):
            raise StructuralInvariantError("Container cards must reference a product")
        if card.get("quantity") is None or card["quantity"] < 1:
            raise StructuralInvariantError("Card quantity must be at least 1")


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _check_product(mapper, connection, target: Product) -> None:
    target.check_invariants()


@event.listens_for(Inventory, "before_insert")
@event.listens_for(Inventory, "before_update")
def _check_inventory(mapper, connection, target: Inventory) -> None:
    target.check_invariants()
