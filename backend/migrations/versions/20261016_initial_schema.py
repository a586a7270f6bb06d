"""Initial schema: stores, users, products, inventory, transfer requests

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "stores",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=2), nullable=False),
        sa.Column("zip_code", sa.String(length=16), nullable=False),
        sa.Column("max_capacity", sa.Float(), nullable=False),
        sa.Column("current_capacity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_stores_name", "stores", ["name"])
    op.create_index("ix_stores_is_active", "stores", ["is_active"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("assigned_store_id", sa.String(length=36), sa.ForeignKey("stores.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_assigned_store_id", "users", ["assigned_store_id"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("product_type", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("brand", sa.String(length=120), nullable=False),
        sa.Column("card_details", sa.JSON(), nullable=True),
        sa.Column("unit_size", sa.Float(), nullable=False),
        sa.Column("base_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bulk_quantity", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_products_sku", "products", ["sku"], unique=True)
    op.create_index("ix_products_product_type", "products", ["product_type"])
    op.create_index("ix_products_is_active", "products", ["is_active"])
    op.create_index("ix_products_type_brand", "products", ["product_type", "brand"])
    op.create_index("ix_products_brand_active", "products", ["brand", "is_active"])

    op.create_table(
        "inventory",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("store_id", sa.String(length=36), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("card_container", sa.JSON(), nullable=True),
        sa.Column("location", sa.String(length=16), nullable=False),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_restocked", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_inventory_store_id", "inventory", ["store_id"])
    op.create_index("ix_inventory_store_product", "inventory", ["store_id", "product_id"])
    op.create_index("ix_inventory_store_location", "inventory", ["store_id", "location"])
    op.create_index("ix_inventory_store_active", "inventory", ["store_id", "is_active"])
    op.create_index("ix_inventory_product_active", "inventory", ["product_id", "is_active"])

    op.create_table(
        "transfer_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("request_number", sa.String(length=32), nullable=False),
        sa.Column("from_store_id", sa.String(length=36), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("to_store_id", sa.String(length=36), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("close_reason", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requested_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sent_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("completed_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("closed_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("request_number", name="uq_transfer_requests_number"),
    )
    op.create_index("ix_transfer_requests_from_store_id", "transfer_requests", ["from_store_id"])
    op.create_index("ix_transfer_requests_to_store_id", "transfer_requests", ["to_store_id"])
    op.create_index("ix_transfer_requests_status", "transfer_requests", ["status"])
    op.create_index("ix_transfer_requests_is_active", "transfer_requests", ["is_active"])
    op.create_index("ix_transfer_requests_from_status", "transfer_requests", ["from_store_id", "status"])
    op.create_index("ix_transfer_requests_to_status", "transfer_requests", ["to_store_id", "status"])
    op.create_index("ix_transfer_requests_status_created", "transfer_requests", ["status", "created_at"])

    op.create_table(
        "transfer_request_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("transfer_request_id", sa.String(length=36), sa.ForeignKey("transfer_requests.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.String(length=36), sa.ForeignKey("inventory.id"), nullable=False),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("requested_quantity", sa.Integer(), nullable=False),
        sa.Column("card_items", sa.JSON(), nullable=True),
        sa.UniqueConstraint("transfer_request_id", "position", name="uq_transfer_items_position"),
    )
    op.create_index("ix_transfer_request_items_transfer_request_id", "transfer_request_items", ["transfer_request_id"])
    op.create_index("ix_transfer_request_items_inventory_id", "transfer_request_items", ["inventory_id"])
    op.create_index("ix_transfer_request_items_product_id", "transfer_request_items", ["product_id"])

    op.create_table(
        "transfer_status_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("transfer_request_id", sa.String(length=36), sa.ForeignKey("transfer_requests.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("changed_by_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_transfer_status_history_transfer_request_id", "transfer_status_history", ["transfer_request_id"])


def downgrade():
    op.drop_table("transfer_status_history")
    op.drop_table("transfer_request_items")
    op.drop_table("transfer_requests")
    op.drop_table("inventory")
    op.drop_table("products")
    op.drop_table("users")
    op.drop_table("stores")
