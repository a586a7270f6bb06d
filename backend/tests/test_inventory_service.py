import pytest

from cardstock.constants import CONTAINER_DISPLAY_CASE, LOCATION_BACK, LOCATION_FLOOR
from cardstock.exceptions import CapacityExceededError, NotFoundError, ValidationError
from cardstock.models import Inventory, Store
from cardstock.services import capacity_service, inventory_service


MISSING_ID = "00000000-0000-4000-8000-000000000000"


def _create(store, product, quantity, location=LOCATION_FLOOR, **kwargs):
    return inventory_service.create_inventory(
        store_id=store.id, product_id=product.id, quantity=quantity, location=location, **kwargs,
    )


class TestCreateInventory:
    def test_creates_and_updates_snapshot(self, make_store, make_product):
        store = make_store(100)
        product = make_product(unit_size=1)

        result = _create(store, product, 40)

        assert result["merged"] is False
        assert result["inventory"].quantity == 40
        assert result["inventory"].last_restocked is not None
        assert store.current_capacity == 40

    def test_merges_into_existing_record(self, db_session, make_store, make_product):
        store = make_store(1000)
        product = make_product(unit_size=1)

        first = _create(store, product, 10, min_stock_level=5, notes="first")["inventory"]
        second = _create(store, product, 15, min_stock_level=3, notes="restock")

        assert second["merged"] is True
        assert second["inventory"].id == first.id
        assert second["inventory"].quantity == 25
        # min_stock_level only ratchets upward
        assert second["inventory"].min_stock_level == 5
        assert second["inventory"].notes == "restock"
        assert "added 15 units" in second["message"]

        active = db_session.query(Inventory).filter_by(store_id=store.id, is_active=True).count()
        assert active == 1
        assert store.current_capacity == 25

    def test_same_product_other_location_is_a_new_record(self, make_store, make_product):
        store = make_store(1000)
        product = make_product(unit_size=1)

        _create(store, product, 10, location=LOCATION_FLOOR)
        result = _create(store, product, 10, location=LOCATION_BACK)

        assert result["merged"] is False
        assert store.current_capacity == 20

    def test_capacity_boundary(self, make_store, make_product):
        store = make_store(100)
        product = make_product(unit_size=1)

        with pytest.raises(CapacityExceededError) as exc_info:
            _create(store, product, 101)
        assert exc_info.value.required == 101
        assert exc_info.value.available == 100

        assert _create(store, product, 100)["inventory"].quantity == 100

    def test_rejected_merge_writes_nothing(self, db_session, make_store, make_product):
        store = make_store(50)
        product = make_product(unit_size=1)
        record = _create(store, product, 45)["inventory"]

        with pytest.raises(CapacityExceededError) as exc_info:
            _create(store, product, 10)
        assert "Required additional: 10, Available: 5" in exc_info.value.message

        db_session.expire_all()
        assert db_session.get(Inventory, record.id).quantity == 45
        assert db_session.get(Store, store.id).current_capacity == 45

    @pytest.mark.parametrize("quantity", [-1, 1.5, "abc", None, True])
    def test_bad_quantity(self, make_store, make_product, quantity):
        with pytest.raises(ValidationError):
            _create(make_store(), make_product(), quantity)

    def test_quantity_ceiling(self, make_store, make_product):
        with pytest.raises(ValidationError, match="cannot exceed 1000000"):
            _create(make_store(10_000_000), make_product(), 1_000_001)

    def test_bad_location(self, make_store, make_product):
        with pytest.raises(ValidationError):
            _create(make_store(), make_product(), 1, location="attic")

    def test_malformed_ids(self, make_product):
        with pytest.raises(ValidationError, match="Invalid store ID format"):
            inventory_service.create_inventory(
                store_id="not-an-id", product_id=make_product().id, quantity=1, location=LOCATION_FLOOR,
            )

    def test_unknown_store_and_product(self, make_store, make_product):
        with pytest.raises(NotFoundError, match="Store not found"):
            inventory_service.create_inventory(
                store_id=MISSING_ID, product_id=make_product().id, quantity=1, location=LOCATION_FLOOR,
            )
        with pytest.raises(NotFoundError, match="Product not found"):
            inventory_service.create_inventory(
                store_id=make_store().id, product_id=MISSING_ID, quantity=1, location=LOCATION_FLOOR,
            )


class TestUpdateInventory:
    def test_quantity_change_is_capacity_checked(self, make_store, make_product):
        store = make_store(100)
        product = make_product(unit_size=2)
        record = _create(store, product, 10)["inventory"]

        with pytest.raises(CapacityExceededError):
            inventory_service.update_inventory(record.id, quantity=51)

        updated = inventory_service.update_inventory(record.id, quantity=50)
        assert updated.quantity == 50
        assert store.current_capacity == 100

    def test_decrease_is_always_allowed(self, db_session, make_store, make_product, make_inventory):
        store = make_store(10)
        # Arranged over capacity on purpose
        record = make_inventory(store, make_product(unit_size=1), 30)

        inventory_service.update_inventory(record.id, quantity=20)
        assert store.current_capacity == 20

    def test_location_change_onto_occupied_slot_is_rejected(self, make_store, make_product):
        store = make_store(1000)
        product = make_product()
        floor = _create(store, product, 5, location=LOCATION_FLOOR)["inventory"]
        _create(store, product, 5, location=LOCATION_BACK)

        with pytest.raises(ValidationError):
            inventory_service.update_inventory(floor.id, location=LOCATION_BACK)

    def test_notes_and_min_stock(self, make_store, make_product):
        record = _create(make_store(), make_product(), 5, min_stock_level=10)["inventory"]
        updated = inventory_service.update_inventory(record.id, min_stock_level=2, notes="checked")
        assert updated.min_stock_level == 2
        assert updated.notes == "checked"

    def test_unknown_record(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.update_inventory(MISSING_ID, quantity=1)


class TestDeleteInventory:
    def test_soft_delete_frees_space(self, db_session, make_store, make_product):
        store = make_store(100)
        record = _create(store, make_product(unit_size=1), 60)["inventory"]

        inventory_service.delete_inventory(record.id)

        assert db_session.get(Inventory, record.id).is_active is False
        assert store.current_capacity == 0
        with pytest.raises(NotFoundError):
            inventory_service.get_inventory(record.id)

    def test_recreate_after_delete_is_not_a_merge(self, make_store, make_product):
        store = make_store(100)
        product = make_product()
        record = _create(store, product, 5)["inventory"]
        inventory_service.delete_inventory(record.id)

        assert _create(store, product, 5)["merged"] is False


class TestCheckDuplicate:
    def test_reports_exact_and_other_location(self, make_store, make_product):
        store = make_store()
        product = make_product(name="Collector Booster")
        floor = _create(store, product, 7, location=LOCATION_FLOOR)["inventory"]
        back = _create(store, product, 3, location=LOCATION_BACK)["inventory"]

        result = inventory_service.check_duplicate(store.id, product.id, LOCATION_FLOOR)

        assert result["exact_match"] == {
            "id": floor.id,
            "location": LOCATION_FLOOR,
            "quantity": 7,
            "product_name": "Collector Booster",
        }
        assert result["different_location"]["id"] == back.id

    def test_nothing_found(self, make_store, make_product):
        result = inventory_service.check_duplicate(make_store().id, make_product().id, LOCATION_BACK)
        assert result == {"exact_match": None, "different_location": None}

    def test_requires_all_fields(self, make_store):
        with pytest.raises(ValidationError, match="required"):
            inventory_service.check_duplicate(make_store().id, None, LOCATION_FLOOR)


class TestCardContainers:
    def test_container_occupies_only_its_footprint(self, make_store, make_product):
        store = make_store(10)
        card = make_product(single_card=True)

        container = inventory_service.create_card_container(
            store_id=store.id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Case A1",
            location=LOCATION_FLOOR,
            container_unit_size=4,
            card_inventory=[{"product_id": card.id, "quantity": 2}, {"product_id": card.id, "quantity": 1}],
        )

        assert container.product_id is None
        assert container.quantity is None
        assert container.card_inventory == [{"product_id": card.id, "quantity": 3}]
        assert container.total_cards == 3
        assert store.current_capacity == 4

    def test_container_footprint_is_capacity_checked(self, make_store):
        with pytest.raises(CapacityExceededError):
            inventory_service.create_card_container(
                store_id=make_store(3).id,
                container_type=CONTAINER_DISPLAY_CASE,
                container_name="Too big",
                location=LOCATION_FLOOR,
                container_unit_size=4,
            )

    def test_only_single_cards_go_in_containers(self, make_store, make_product):
        booster = make_product(unit_size=1)
        with pytest.raises(ValidationError, match="not a single card"):
            inventory_service.create_card_container(
                store_id=make_store().id,
                container_type=CONTAINER_DISPLAY_CASE,
                container_name="Case",
                location=LOCATION_FLOOR,
                card_inventory=[{"product_id": booster.id, "quantity": 1}],
            )

    def test_containers_have_no_quantity(self, make_store, make_product):
        container = inventory_service.create_card_container(
            store_id=make_store().id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Case",
            location=LOCATION_FLOOR,
        )
        with pytest.raises(ValidationError):
            inventory_service.update_inventory(container.id, quantity=3)

    def test_update_container_cards_and_size(self, make_store, make_product):
        store = make_store(10)
        card = make_product(single_card=True)
        container = inventory_service.create_card_container(
            store_id=store.id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Case",
            location=LOCATION_FLOOR,
            container_unit_size=2,
        )

        updated = inventory_service.update_card_container(
            container.id,
            container_unit_size=5,
            card_inventory=[{"product_id": card.id, "quantity": 4}],
        )
        assert updated.card_quantity(card.id) == 4
        assert store.current_capacity == 5

        with pytest.raises(CapacityExceededError):
            inventory_service.update_card_container(container.id, container_unit_size=11)

    def test_find_containers_with_card(self, make_store, make_product):
        store = make_store()
        card = make_product(single_card=True)
        other = make_product(single_card=True)
        holding = inventory_service.create_card_container(
            store_id=store.id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Has it",
            location=LOCATION_FLOOR,
            card_inventory=[{"product_id": card.id, "quantity": 1}],
        )
        inventory_service.create_card_container(
            store_id=store.id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Does not",
            location=LOCATION_FLOOR,
            card_inventory=[{"product_id": other.id, "quantity": 1}],
        )

        found = inventory_service.find_containers_with_card(card.id)
        assert [record.id for record in found] == [holding.id]


class TestQueries:
    def test_low_stock(self, make_store, make_product):
        store = make_store()
        low = _create(store, make_product(), 2, min_stock_level=5)["inventory"]
        _create(store, make_product(), 10, min_stock_level=5)

        assert [record.id for record in inventory_service.find_low_stock(store.id)] == [low.id]

    def test_list_store_inventory_filters_location(self, make_store, make_product):
        store = make_store()
        other_store = make_store()
        floor = _create(store, make_product(), 1, location=LOCATION_FLOOR)["inventory"]
        _create(store, make_product(), 1, location=LOCATION_BACK)
        _create(other_store, make_product(), 1)

        assert len(inventory_service.list_store_inventory(store.id)) == 2
        assert [r.id for r in inventory_service.list_store_inventory(store.id, LOCATION_FLOOR)] == [floor.id]
        assert len(inventory_service.list_inventory()) == 3

    def test_capacity_matches_after_mixed_operations(self, make_store, make_product):
        store = make_store(500)
        a = make_product(unit_size=1.5)
        b = make_product(unit_size=2)
        rec_a = _create(store, a, 10)["inventory"]
        _create(store, b, 20, location=LOCATION_BACK)
        _create(store, a, 4)
        inventory_service.update_inventory(rec_a.id, quantity=6)

        assert store.current_capacity == capacity_service.calculate_store_capacity(store.id) == 49
