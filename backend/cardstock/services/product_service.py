# backend/cardstock/services/product_service.py
"""
Product catalog service.

sku, product_type and unit_size are fixed once a product exists: inventory
capacity figures are derived from unit_size, so changing it would silently
rewrite every store's occupied space.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..constants import LOCATION_FLOOR, PRODUCT_SINGLE_CARD, PRODUCT_TYPES
from ..exceptions import NotFoundError, ValidationError
from ..extensions import db
from ..models import Inventory, Product
from ..validation import ModelValidationPolicy, require_choice, require_identifier, validate_payload
from .concurrency import lock_for_update, run_atomic


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "product_type",
        "name",
        "description",
        "brand",
        "card_details",
        "unit_size",
        "base_price_cents",
        "bulk_quantity",
        "is_active",
    },
    required_on_create={"sku", "product_type", "name", "brand", "base_price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "brand",
        "card_details",
        "base_price_cents",
        "bulk_quantity",
        "is_active",
    },
)


def list_products(
    product_type: str | None = None,
    brand: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
) -> list[Product]:
    query = db.session.query(Product)
    if product_type:
        query = query.filter(Product.product_type == require_choice(product_type, "product_type", PRODUCT_TYPES))
    if brand:
        query = query.filter(Product.brand == brand)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(bool(is_active)))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(Product.name.ilike(like), Product.sku.ilike(like), Product.description.ilike(like))
        )
    return query.order_by(Product.name.asc(), Product.sku.asc()).all()


def list_brands() -> list[str]:
    rows = (
        db.session.query(Product.brand)
        .filter(Product.is_active.is_(True))
        .distinct()
        .all()
    )
    return sorted(brand for (brand,) in rows if brand)


def get_product(product_id) -> Product:
    product_id = require_identifier(product_id, "product ID")
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def get_product_stock(product_id) -> dict:
    """
    Where a product is stocked: per-store floor/back/total counts, covering
    standard records and cards held in containers.
    """
    product = get_product(product_id)

    records = (
        db.session.query(Inventory)
        .filter(
            Inventory.is_active.is_(True),
            or_(Inventory.product_id == product.id, Inventory.card_container.isnot(None)),
        )
        .all()
    )

    stores: dict[str, dict] = {}
    total = 0
    for record in records:
        if record.is_card_container:
            quantity = record.card_quantity(product.id)
        else:
            quantity = record.quantity or 0
        if not quantity:
            continue

        entry = stores.setdefault(record.store_id, {
            "store_id": record.store_id,
            "store_name": record.store.name if record.store else None,
            "floor": 0,
            "back": 0,
            "total": 0,
        })
        entry["floor" if record.location == LOCATION_FLOOR else "back"] += quantity
        entry["total"] += quantity
        total += quantity

    return {"product": product, "total_quantity": total, "stores": list(stores.values())}


def create_product(payload: dict) -> Product:
    patch = validate_payload(
        model=Product,
        payload=payload,
        policy=PRODUCT_CREATE_POLICY,
        partial=False,
    )
    require_choice(patch["product_type"], "product_type", PRODUCT_TYPES)
    if patch["product_type"] == PRODUCT_SINGLE_CARD:
        patch.setdefault("unit_size", 0)
    elif patch.get("unit_size") is None:
        raise ValidationError("Missing required fields: unit_size")
    if patch["base_price_cents"] < 0:
        raise ValidationError("base_price_cents must be >= 0")

    def _op():
        if db.session.query(Product).filter(Product.sku == patch["sku"]).first() is not None:
            raise ValidationError("Product with this SKU already exists")

        product = Product(**patch)
        product.check_invariants()
        db.session.add(product)
        db.session.flush()
        return product

    return run_atomic(_op)


def update_product(product_id, payload: dict) -> Product:
    product_id = require_identifier(product_id, "product ID")
    patch = validate_payload(
        model=Product,
        payload=payload,
        policy=PRODUCT_UPDATE_POLICY,
        partial=True,
    )

    def _op():
        product = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if product is None:
            raise NotFoundError("Product", product_id)

        for key, value in patch.items():
            setattr(product, key, value)
        product.check_invariants()

        db.session.flush()
        return product

    return run_atomic(_op)


def delete_product(product_id) -> Product:
    """Soft delete; inventory and transfer history keep their references."""
    product_id = require_identifier(product_id, "product ID")

    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        product.is_active = False
        db.session.flush()
        return product

    return run_atomic(_op)
