"""
Settlement ledger schema.

Creates the orders, balances and ledger_entries tables.  They
correspond to the SQLAlchemy metadata defined in
``workers/src/settlement/services/db_ledger_store.py``.

Revision ID: 20261018_settlement_ledger
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_settlement_ledger"
down_revision = None
branch_labels = None
depends_on = None


def _amount(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=28, scale=8), nullable=False, server_default="0", **kwargs)


def upgrade() -> None:
    """Create orders, balances and ledger_entries tables."""
    op.create_table(
        "orders",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("external_order_id", sa.String(), nullable=True),
        sa.Column("asset", sa.String(16), nullable=False),
        sa.Column("quote", sa.String(16), nullable=False),
        sa.Column("side", sa.String(4), nullable=False),
        sa.Column("amount", sa.Numeric(precision=28, scale=8), nullable=False),
        _amount("filled_amount"),
        _amount("price"),
        _amount("total_value"),
        _amount("platform_fee"),
        _amount("venue_fee"),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_external_order_id", "orders", ["external_order_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "balances",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("asset", sa.String(16), nullable=False),
        _amount("balance"),
        _amount("available_balance"),
        _amount("locked_balance"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id", "asset", name="pk_balances"),
    )

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.String(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("asset", sa.String(16), nullable=False),
        sa.Column("amount", sa.Numeric(precision=28, scale=8), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("order_id", "asset", name="uq_ledger_entries_order_asset"),
    )


def downgrade() -> None:
    """Drop the settlement tables."""
    op.drop_table("ledger_entries")
    op.drop_table("balances")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_external_order_id", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
