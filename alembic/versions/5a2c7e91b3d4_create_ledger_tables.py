"""Create employees, banks, supply, policies, ledger and audit tables

Revision ID: 5a2c7e91b3d4
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5a2c7e91b3d4'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the bank schema."""

    # --- employees ---
    op.create_table(
        "employees",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("slack_username", sa.String(100), nullable=True, unique=True),
        sa.Column("department", sa.String(50), nullable=True),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column("hire_date", sa.Date, nullable=True),
        sa.Column("manager_id", sa.String(64), nullable=True),
        sa.Column("permissions", postgresql.JSONB, nullable=True, server_default="[]"),
        sa.Column(
            "werm_balances", postgresql.JSONB, nullable=False,
            server_default='{"gold": 0, "silver": 0, "bronze": 0}',
        ),
        sa.Column(
            "lifetime_earned", postgresql.JSONB, nullable=False,
            server_default='{"gold": 0, "silver": 0, "bronze": 0}',
        ),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- banks ---
    op.create_table(
        "banks",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # At most one default bank
    op.create_index(
        "uq_banks_default", "banks", ["is_default"],
        unique=True,
        postgresql_where=sa.text("is_default"),
    )

    # --- bank_coin_supply ---
    op.create_table(
        "bank_coin_supply",
        sa.Column(
            "bank_id", sa.String(64),
            sa.ForeignKey("banks.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("werm_type", sa.String(16), nullable=False),
        sa.Column("digital_amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("physical_amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("bank_id", "werm_type"),
        sa.CheckConstraint("digital_amount >= 0 AND physical_amount >= 0", name="ck_supply_non_negative"),
    )

    # --- policies ---
    op.create_table(
        "policies",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("operation", sa.String(20), nullable=False, server_default="distribution"),
        sa.Column("execution_mode", sa.String(20), server_default="manual"),
        sa.Column("target_type", sa.String(20), server_default="all"),
        sa.Column("target_values", postgresql.JSONB, server_default="[]"),
        sa.Column("approval_required", sa.Boolean, server_default=sa.false()),
        sa.Column("gold_reward", sa.Integer, server_default="0"),
        sa.Column("silver_reward", sa.Integer, server_default="0"),
        sa.Column("bronze_reward", sa.Integer, server_default="0"),
        sa.Column("created_by", postgresql.JSONB, server_default="{}"),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_system_policy", sa.Boolean, server_default=sa.false()),
        sa.Column("metadata", postgresql.JSONB, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_policies_status_category", "policies", ["status", "category"])

    # --- werm_transactions (append-only) ---
    op.create_table(
        "werm_transactions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("sender_id", sa.String(64), nullable=True),
        sa.Column("receiver_id", sa.String(64), nullable=True),
        sa.Column("sender_email", sa.String(255), nullable=False),
        sa.Column("receiver_username", sa.String(100), nullable=False),
        sa.Column("werm_type", sa.String(16), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("value_aud", sa.Float, server_default="0"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("policy_id", sa.String(64), nullable=True),
        sa.Column("source", sa.String(20), server_default="app"),
        sa.Column("status", sa.String(20), server_default="completed"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="ck_werm_transactions_amount_positive"),
    )
    op.create_index(
        "ix_werm_transactions_created", "werm_transactions", ["created_at"],
    )
    op.create_index(
        "ix_werm_transactions_sender", "werm_transactions", ["sender_id", "created_at"],
    )
    op.create_index(
        "ix_werm_transactions_receiver", "werm_transactions", ["receiver_id", "created_at"],
    )

    # --- admin_log ---
    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("actor_email", sa.String(255), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100), nullable=True),
        sa.Column("before_snapshot", postgresql.JSONB, nullable=True),
        sa.Column("after_snapshot", postgresql.JSONB, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"],
    )


def downgrade() -> None:
    """Drop the bank schema."""
    op.drop_index("ix_admin_log_target", table_name="admin_log")
    op.drop_table("admin_log")
    op.drop_index("ix_werm_transactions_receiver", table_name="werm_transactions")
    op.drop_index("ix_werm_transactions_sender", table_name="werm_transactions")
    op.drop_index("ix_werm_transactions_created", table_name="werm_transactions")
    op.drop_table("werm_transactions")
    op.drop_index("ix_policies_status_category", table_name="policies")
    op.drop_table("policies")
    op.drop_table("bank_coin_supply")
    op.drop_index("uq_banks_default", table_name="banks")
    op.drop_table("banks")
    op.drop_table("employees")
