"""Shape rules enforced at flush time."""

import pytest

from cardstock.constants import CONTAINER_BULK_BIN, LOCATION_FLOOR, TRANSFER_STATUS_OPEN
from cardstock.exceptions import StructuralInvariantError
from cardstock.models import Inventory, Product, TransferRequest


def _container(**overrides):
    doc = {
        "container_type": CONTAINER_BULK_BIN,
        "container_name": "Bin 1",
        "container_unit_size": 2,
        "card_inventory": [],
    }
    doc.update(overrides)
    return doc


def test_record_with_both_product_and_container_is_rejected(db_session, make_store, make_product):
    store = make_store()
    db_session.add(Inventory(
        store_id=store.id,
        product_id=make_product().id,
        card_container=_container(),
        location=LOCATION_FLOOR,
    ))
    with pytest.raises(StructuralInvariantError, match="cannot have a product_id"):
        db_session.flush()
    db_session.rollback()


def test_record_with_neither_is_rejected(db_session, make_store):
    db_session.add(Inventory(store_id=make_store().id, location=LOCATION_FLOOR))
    with pytest.raises(StructuralInvariantError, match="must have a product_id"):
        db_session.flush()
    db_session.rollback()


def test_container_with_quantity_is_rejected(db_session, make_store):
    db_session.add(Inventory(
        store_id=make_store().id,
        quantity=3,
        card_container=_container(),
        location=LOCATION_FLOOR,
    ))
    with pytest.raises(StructuralInvariantError, match="cannot have a quantity"):
        db_session.flush()
    db_session.rollback()


def test_negative_quantity_is_rejected(db_session, make_store, make_product):
    db_session.add(Inventory(
        store_id=make_store().id,
        product_id=make_product().id,
        quantity=-1,
        location=LOCATION_FLOOR,
    ))
    with pytest.raises(StructuralInvariantError, match="negative"):
        db_session.flush()
    db_session.rollback()


def test_unknown_container_type_is_rejected(db_session, make_store):
    db_session.add(Inventory(
        store_id=make_store().id,
        card_container=_container(container_type="shoebox"),
        location=LOCATION_FLOOR,
    ))
    with pytest.raises(StructuralInvariantError, match="container_type"):
        db_session.flush()
    db_session.rollback()


@pytest.mark.parametrize("fields, message", [
    ({"product_type": "singleCard", "unit_size": 1, "card_details": {
        "set": "DMU", "card_number": "1", "rarity": "rare", "condition": "mint", "finish": "foil"}},
     "unit_size of 0"),
    ({"product_type": "singleCard", "unit_size": 0, "card_details": None}, "require card_details"),
    ({"product_type": "singleCard", "unit_size": 0, "card_details": {
        "set": "DMU", "card_number": "1", "rarity": "rare", "condition": "pristine", "finish": "foil"}},
     "Invalid card condition"),
    ({"product_type": "boosterPack", "unit_size": 0}, "greater than 0"),
    ({"product_type": "boosterPack", "unit_size": 1, "card_details": {"set": "DMU"}}, "cannot have card_details"),
    ({"product_type": "toaster", "unit_size": 1}, "Unknown product type"),
])
def test_product_rules(db_session, fields, message):
    db_session.add(Product(sku="BAD-1", name="Bad", brand="Nobody", base_price_cents=1, **fields))
    with pytest.raises(StructuralInvariantError, match=message):
        db_session.flush()
    db_session.rollback()


def test_transfer_to_same_store_is_rejected_at_flush(db_session, make_store, make_user):
    store = make_store()
    user = make_user("partner")
    db_session.add(TransferRequest(
        request_number="TR-20260101-0001",
        from_store_id=store.id,
        to_store_id=store.id,
        status=TRANSFER_STATUS_OPEN,
        created_by_user_id=user.id,
    ))
    with pytest.raises(StructuralInvariantError, match="same store"):
        db_session.flush()
    db_session.rollback()


def test_container_helpers(make_product):
    card = make_product(single_card=True)
    record = Inventory(card_container=_container(card_inventory=[{"product_id": card.id, "quantity": 4}]))

    assert record.is_card_container
    assert record.total_cards == 4
    assert record.unique_card_types == 1
    assert record.card_quantity(card.id) == 4
    assert record.card_quantity("someone-else") == 0
    assert record.effective_unit_size == 2


def test_card_identifier(make_product):
    card = make_product(single_card=True, name="Sheoldred")
    assert card.card_identifier == f"Sheoldred (DMU #{card.card_details['card_number']})"
    assert make_product().card_identifier is None
