# Tests for the product catalog: type rules, immutable fields, stock lookup.

import pytest

from cardstock.constants import CONTAINER_BULK_BOX, LOCATION_BACK, LOCATION_FLOOR
from cardstock.exceptions import NotFoundError, StructuralInvariantError, ValidationError
from cardstock.services import inventory_service, product_service


def _sealed(**overrides):
    payload = {
        "sku": "PKM-SV-ETB",
        "product_type": "deckBox",
        "name": "Scarlet & Violet Elite Trainer Box",
        "brand": "The Pokemon Company",
        "unit_size": 6,
        "base_price_cents": 4999,
    }
    payload.update(overrides)
    return payload


def _card(**overrides):
    payload = {
        "sku": "MTG-ONE-001",
        "product_type": "singleCard",
        "name": "Elesh Norn",
        "brand": "Wizards of the Coast",
        "base_price_cents": 2500,
        "card_details": {
            "set": "ONE",
            "card_number": "1",
            "rarity": "mythic",
            "condition": "near-mint",
            "finish": "foil",
        },
    }
    payload.update(overrides)
    return payload


class TestCreateProduct:
    def test_sealed_product(self, db_session):
        product = product_service.create_product(_sealed())
        assert product.unit_size == 6
        assert product.is_active is True

    def test_single_card_defaults_to_zero_size(self, db_session):
        product = product_service.create_product(_card())
        assert product.unit_size == 0
        assert product.card_identifier == "Elesh Norn (ONE #1)"

    def test_sealed_product_needs_unit_size(self, db_session):
        payload = _sealed()
        del payload["unit_size"]
        with pytest.raises(ValidationError, match="unit_size"):
            product_service.create_product(payload)

    def test_single_card_with_size_rejected(self, db_session):
        with pytest.raises(StructuralInvariantError):
            product_service.create_product(_card(unit_size=1))

    def test_single_card_needs_details(self, db_session):
        with pytest.raises(StructuralInvariantError):
            product_service.create_product(_card(card_details={"set": "ONE"}))

    def test_duplicate_sku(self, db_session):
        product_service.create_product(_sealed())
        with pytest.raises(ValidationError, match="SKU already exists"):
            product_service.create_product(_sealed(name="Other"))

    def test_unknown_type(self, db_session):
        with pytest.raises(ValidationError, match="product_type"):
            product_service.create_product(_sealed(product_type="plushie"))


class TestUpdateProduct:
    @pytest.mark.parametrize("field, value", [
        ("sku", "NEW-SKU"),
        ("product_type", "deck"),
        ("unit_size", 10),
    ])
    def test_fixed_fields(self, db_session, make_product, field, value):
        product = make_product()
        with pytest.raises(ValidationError, match="Field not allowed"):
            product_service.update_product(product.id, {field: value})

    def test_rename_and_reprice(self, db_session, make_product):
        product = make_product()
        updated = product_service.update_product(product.id, {"name": "Renamed", "base_price_cents": 599})
        assert updated.name == "Renamed"
        assert updated.base_price_cents == 599

    def test_delete_is_soft(self, db_session, make_product):
        product = make_product()
        product_service.delete_product(product.id)

        assert product_service.get_product(product.id).is_active is False
        assert product not in product_service.list_products(is_active=True)


class TestQueries:
    def test_filters_and_search(self, db_session):
        product_service.create_product(_sealed())
        product_service.create_product(_card())

        assert [p.sku for p in product_service.list_products(product_type="singleCard")] == ["MTG-ONE-001"]
        assert [p.sku for p in product_service.list_products(search="trainer")] == ["PKM-SV-ETB"]
        assert product_service.list_brands() == ["The Pokemon Company", "Wizards of the Coast"]

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            product_service.get_product("00000000-0000-0000-0000-000000000000")

    def test_stock_counts_records_and_containers(
        self, db_session, two_stores, make_product, make_inventory
    ):
        store_a, store_b = two_stores
        sealed = make_product()
        card = make_product(single_card=True)
        make_inventory(store_a, sealed, 10, location=LOCATION_FLOOR)
        make_inventory(store_a, sealed, 4, location=LOCATION_BACK)
        make_inventory(store_b, sealed, 3, is_active=False)
        inventory_service.create_card_container(
            store_id=store_b.id,
            container_type=CONTAINER_BULK_BOX,
            container_name="Trade Binder",
            location=LOCATION_FLOOR,
            card_inventory=[{"product_id": card.id, "quantity": 2}],
        )

        stock = product_service.get_product_stock(sealed.id)
        assert stock["total_quantity"] == 14
        assert stock["stores"] == [{
            "store_id": store_a.id,
            "store_name": "Store A",
            "floor": 10,
            "back": 4,
            "total": 14,
        }]

        card_stock = product_service.get_product_stock(card.id)
        assert card_stock["total_quantity"] == 2
        assert card_stock["stores"][0]["store_id"] == store_b.id
