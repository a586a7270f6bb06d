# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cardstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "cardstock:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Two stores, a handful of products, one user per role.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username mgr --email mgr@example.com --role store-manager --store-id <uuid>
# - python -m flask users deactivate mgr
#
# Capacity maintenance:
# - python -m flask capacity recalc [--store-id <uuid>]
#   Recompute current_capacity from inventory and report stores whose cached value drifted.

import click
from flask.cli import with_appcontext

from .constants import (
    CONTAINER_DISPLAY_CASE,
    LOCATION_BACK,
    LOCATION_FLOOR,
    ROLE_EMPLOYEE,
    ROLE_PARTNER,
    ROLE_STORE_MANAGER,
    USER_ROLES,
)
from .exceptions import CardStockError
from .extensions import db
from .models import Store
from .services import capacity_service, inventory_service, product_service, store_service, user_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed a demo dataset: two stores, sealed products and single cards,
    floor/back stock, one display case, and a partner, manager and employee
    per store.
    """
    if db.session.query(Store).count():
        click.echo("WARN Stores already exist, skipping demo seed")
        return

    click.echo("START Seeding demo data...")
    try:
        downtown = store_service.create_store({
            "name": "Downtown Games",
            "address": "12 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "max_capacity": 1000,
        })
        uptown = store_service.create_store({
            "name": "Uptown Cards",
            "address": "400 Oak Ave",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62704",
            "max_capacity": 250,
        })
        click.echo(f"PASS Created stores: {downtown.name}, {uptown.name}")

        booster = product_service.create_product({
            "sku": "MTG-DMU-BOOSTER",
            "product_type": "boosterPack",
            "name": "Dominaria United Draft Booster",
            "brand": "Wizards of the Coast",
            "unit_size": 1,
            "base_price_cents": 499,
        })
        sleeves = product_service.create_product({
            "sku": "DS-MATTE-BLACK",
            "product_type": "sleeves",
            "name": "Matte Sleeves Black (100)",
            "brand": "Dragon Shield",
            "unit_size": 0.5,
            "base_price_cents": 1199,
        })
        card = product_service.create_product({
            "sku": "MTG-DMU-107-NM",
            "product_type": "singleCard",
            "name": "Sheoldred, the Apocalypse",
            "brand": "Wizards of the Coast",
            "base_price_cents": 7500,
            "card_details": {
                "set": "DMU",
                "card_number": "107",
                "rarity": "mythic",
                "condition": "near-mint",
                "finish": "non-foil",
            },
        })
        click.echo("PASS Created products")

        inventory_service.create_inventory(
            store_id=downtown.id, product_id=booster.id, quantity=200, location=LOCATION_BACK, min_stock_level=50,
        )
        inventory_service.create_inventory(
            store_id=downtown.id, product_id=sleeves.id, quantity=40, location=LOCATION_FLOOR, min_stock_level=10,
        )
        inventory_service.create_inventory(
            store_id=uptown.id, product_id=booster.id, quantity=24, location=LOCATION_FLOOR, min_stock_level=36,
        )
        inventory_service.create_card_container(
            store_id=downtown.id,
            container_type=CONTAINER_DISPLAY_CASE,
            container_name="Display Case A1",
            location=LOCATION_FLOOR,
            container_unit_size=4,
            card_inventory=[{"product_id": card.id, "quantity": 3}],
        )
        click.echo("PASS Created inventory")

        users = [
            ("partner", "partner@cardstock.local", ROLE_PARTNER, None),
            ("downtown-mgr", "downtown-mgr@cardstock.local", ROLE_STORE_MANAGER, downtown.id),
            ("uptown-mgr", "uptown-mgr@cardstock.local", ROLE_STORE_MANAGER, uptown.id),
            ("downtown-clerk", "downtown-clerk@cardstock.local", ROLE_EMPLOYEE, downtown.id),
        ]
        for username, email, role, store_id in users:
            user_service.create_user(username, email, role, store_id)
            click.echo(f"PASS Created user: {username} ({role})")
    except CardStockError as exc:
        click.echo(f"FAIL Demo seed failed: {exc.message}")
        raise SystemExit(1)

    click.echo("DONE Demo data seeded")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    click.echo(f"{'USERNAME':<24} {'ROLE':<16} {'STORE':<38} ACTIVE")
    for user in users:
        click.echo(
            f"{user.username:<24} {user.role:<16} {user.assigned_store_id or '-':<38} "
            f"{'yes' if user.is_active else 'no'}"
        )


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True)
@click.option('--store-id', default=None, help='Assigned store (required for managers and employees)')
@with_appcontext
def create_user_cmd(username, email, role, store_id):
    try:
        user = user_service.create_user(username, email, role, store_id)
    except CardStockError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.username} ({user.role}) id={user.id}")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user(username):
    try:
        user_service.set_user_active(username, False)
    except CardStockError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Deactivated user: {username}")


@click.group('capacity')
def capacity_group():
    """Store capacity maintenance commands."""


@capacity_group.command('recalc')
@click.option('--store-id', default=None, help='Only recompute this store')
@with_appcontext
def recalc_capacity(store_id):
    """Recompute current_capacity from active inventory and report drift."""
    report = capacity_service.recalculate_all(store_id=store_id)
    if not report:
        click.echo("No stores found.")
        return

    drifted = 0
    for row in report:
        marker = "FIXED" if row["drift"] else "OK   "
        if row["drift"]:
            drifted += 1
        click.echo(
            f"{marker} {row['name']:<30} {row['previous'] or 0:>10.2f} -> {row['current']:>10.2f}"
        )
    click.echo(f"\nDONE {len(report)} store(s) checked, {drifted} corrected")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(capacity_group)
