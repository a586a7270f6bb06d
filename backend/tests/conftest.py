"""
Pytest fixtures for CardStock backend tests.

Provides an in-memory database, per-test table wipe, factories for stores,
products, inventory and users, and a session-cookie login helper.
"""

import itertools

import pytest
from cardstock import create_app
from cardstock.constants import (
    LOCATION_FLOOR,
    ROLE_EMPLOYEE,
    ROLE_PARTNER,
    ROLE_STORE_MANAGER,
)
from cardstock.extensions import db
from cardstock.models import Inventory, Product, Store, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSFER_ENFORCE_DESTINATION_CAPACITY': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


_seq = itertools.count(1)


@pytest.fixture(scope='function')
def make_store(db_session):
    """Factory: make_store(max_capacity=1000, name=None) -> Store."""
    def _make(max_capacity=1000, name=None, **overrides):
        n = next(_seq)
        store = Store(
            name=name or f"Store {n}",
            address=f"{n} Main St",
            city="Springfield",
            state="IL",
            zip_code="62701",
            max_capacity=max_capacity,
            current_capacity=0,
            **overrides,
        )
        db_session.add(store)
        db_session.commit()
        return store
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(unit_size=1) for sealed goods, make_product(single_card=True) for cards."""
    def _make(unit_size=1, single_card=False, name=None, **overrides):
        n = next(_seq)
        if single_card:
            fields = dict(
                product_type="singleCard",
                unit_size=0,
                card_details={
                    "set": "DMU",
                    "card_number": str(n),
                    "rarity": "rare",
                    "condition": "near-mint",
                    "finish": "non-foil",
                },
            )
        else:
            fields = dict(product_type="boosterPack", unit_size=unit_size)
        fields.update(overrides)
        product = Product(
            sku=f"SKU-{n:05d}",
            name=name or f"Product {n}",
            brand="Wizards of the Coast",
            base_price_cents=499,
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_inventory(db_session):
    """
    Factory: raw inventory row, bypassing the service (and its capacity
    check). Use it to arrange a starting state.
    """
    def _make(store, product, quantity, location=LOCATION_FLOOR, **overrides):
        record = Inventory(
            store_id=store.id,
            product_id=product.id,
            quantity=quantity,
            location=location,
            **overrides,
        )
        db_session.add(record)
        db_session.commit()
        return record
    return _make


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(role, store=None, is_active=True) -> User."""
    def _make(role, store=None, is_active=True):
        n = next(_seq)
        user = User(
            username=f"{role}-{n}",
            email=f"{role}-{n}@cardstock.test",
            role=role,
            assigned_store_id=store.id if store is not None else None,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def two_stores(make_store):
    """Source store A (roomy) and destination store B."""
    return make_store(1000, name="Store A"), make_store(100, name="Store B")


@pytest.fixture(scope='function')
def actors(two_stores, make_user):
    """A partner, a manager and an employee per store."""
    store_a, store_b = two_stores
    return {
        "partner": make_user(ROLE_PARTNER),
        "manager_a": make_user(ROLE_STORE_MANAGER, store_a),
        "manager_b": make_user(ROLE_STORE_MANAGER, store_b),
        "employee_a": make_user(ROLE_EMPLOYEE, store_a),
    }


@pytest.fixture(scope='function')
def login(client):
    """login(user): put the user's id into the signed session cookie."""
    def _login(user):
        with client.session_transaction() as sess:
            sess["user_id"] = user.id
    return _login
