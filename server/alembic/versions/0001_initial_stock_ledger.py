"""initial stock ledger

Revision ID: 0001_initial_stock_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial_stock_ledger"
down_revision = None
branch_labels = None
depends_on = None


def _ledger_key_columns() -> list:
    return [
        sa.Column("lot_id", sa.Integer(), sa.ForeignKey("lots.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=100), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "item_type",
            sa.Enum("MANUFACTURED", "EXTERNAL", "RAW_MATERIAL", name="item_type"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "item_units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("conversion_rate", sa.Numeric(18, 6), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("item_id", "unit_id", name="uq_item_unit"),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "lots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("lot_number", sa.String(length=100), nullable=False, unique=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("production_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_ledger_key_columns(),
        sa.Column("quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("lot_id", "warehouse_id", "unit_id", name="uq_inventory_ledger_key"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )
    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "transaction_type",
            sa.Enum("INBOUND", "OUTBOUND", name="inventory_transaction_type"),
            nullable=False,
        ),
        *_ledger_key_columns(),
        sa.Column("quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("reference_number", sa.String(length=100)),
        sa.Column("barcode_data", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
    )
    op.create_index(
        "ix_inventory_transactions_ledger_key",
        "inventory_transactions",
        ["lot_id", "warehouse_id", "unit_id"],
    )
    op.create_index("ix_inventory_transactions_transaction_date", "inventory_transactions", ["transaction_date"])
    op.create_table(
        "allocations",
        sa.Column("id", sa.Integer(), primary_key=True),
        *_ledger_key_columns(),
        sa.Column("quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("allocation_date", sa.DateTime(), nullable=False),
        sa.Column("reference_number", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_allocations_quantity_positive"),
    )
    op.create_index("ix_allocations_ledger_key", "allocations", ["lot_id", "warehouse_id", "unit_id"])
    op.create_table(
        "monthly_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        *_ledger_key_columns(),
        sa.Column("month", sa.Date(), nullable=False),
        sa.Column("opening_quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("incoming_quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("outgoing_quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("closing_quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "item_id", "lot_id", "warehouse_id", "unit_id", "month", name="uq_monthly_inventory_key_month"
        ),
    )
    op.create_index("ix_monthly_inventory_month", "monthly_inventory", ["month"])


def downgrade() -> None:
    op.drop_index("ix_monthly_inventory_month", table_name="monthly_inventory")
    op.drop_table("monthly_inventory")
    op.drop_index("ix_allocations_ledger_key", table_name="allocations")
    op.drop_table("allocations")
    op.drop_index("ix_inventory_transactions_transaction_date", table_name="inventory_transactions")
    op.drop_index("ix_inventory_transactions_ledger_key", table_name="inventory_transactions")
    op.drop_table("inventory_transactions")
    op.drop_table("inventory")
    op.drop_table("lots")
    op.drop_table("warehouses")
    op.drop_table("item_units")
    op.drop_table("units")
    op.drop_table("items")
    sa.Enum(name="inventory_transaction_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="item_type").drop(op.get_bind(), checkfirst=True)
