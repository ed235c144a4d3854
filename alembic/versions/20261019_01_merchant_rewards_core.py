"""Merchant rewards core tables.

Revision ID: 20261019_01
Revises: 
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE merchant_status AS ENUM ('created', 'Active', 'Suspended')")
    op.execute("CREATE TYPE reward_period AS ENUM ('weekly', 'monthly')")
    op.execute("CREATE TYPE reward_tier AS ENUM ('starter', 'bronze', 'gold')")
    op.execute("CREATE TYPE cycle_payout_status AS ENUM ('paid', 'unpaid')")

    op.create_table(
        "merchants",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("bvn", sa.String(length=16), nullable=True),
        sa.Column("gov_id_path", sa.String(), nullable=True),
        sa.Column("utility_path", sa.String(), nullable=True),
        sa.Column("account_number", sa.String(length=32), nullable=True),
        sa.Column(
            "status",
            sa.Enum(name="merchant_status", create_type=False),
            nullable=False,
            server_default="created",
        ),
        sa.Column("cashback_earned", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("referral_code", sa.String(length=32), nullable=True, unique=True),
        sa.Column("reward_plan_period", sa.Enum(name="reward_period", create_type=False), nullable=True),
        sa.Column("reward_plan_tier", sa.Enum(name="reward_tier", create_type=False), nullable=True),
        sa.Column("reward_plan_selected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_cycle_id", sa.dialects.postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "(reward_plan_period IS NULL AND reward_plan_tier IS NULL AND reward_plan_selected_at IS NULL)"
            " OR (reward_plan_period IS NOT NULL AND reward_plan_tier IS NOT NULL"
            " AND reward_plan_selected_at IS NOT NULL)",
            name="ck_merchants_reward_plan_complete",
        ),
    )

    op.create_table(
        "merchant_referrals",
        sa.Column("id", sa.dialects.postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("merchant_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("cashback", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("total_tx", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
        sa.CheckConstraint("cashback >= 0", name="ck_merchant_referrals_cashback_non_negative"),
    )
    op.create_index("ix_merchant_referrals_merchant_id", "merchant_referrals", ["merchant_id"])
    op.create_index("ix_merchant_referrals_joined_at", "merchant_referrals", ["joined_at"])
    op.create_index(
        "ix_merchant_referrals_merchant_active_joined",
        "merchant_referrals",
        ["merchant_id", "is_active", "joined_at"],
    )

    op.create_table(
        "merchant_cycles",
        sa.Column("id", sa.dialects.postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("merchant_id", sa.String(length=128), nullable=False),
        sa.Column("period", sa.Enum(name="reward_period", create_type=False), nullable=False),
        sa.Column("tier", sa.Enum(name="reward_tier", create_type=False), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount_due", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column(
            "payout_status",
            sa.Enum(name="cycle_payout_status", create_type=False),
            nullable=False,
            server_default="unpaid",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_merchant_cycles_merchant_id", "merchant_cycles", ["merchant_id"])


def downgrade() -> None:
    op.drop_index("ix_merchant_cycles_merchant_id", table_name="merchant_cycles")
    op.drop_table("merchant_cycles")
    op.drop_index("ix_merchant_referrals_merchant_active_joined", table_name="merchant_referrals")
    op.drop_index("ix_merchant_referrals_joined_at", table_name="merchant_referrals")
    op.drop_index("ix_merchant_referrals_merchant_id", table_name="merchant_referrals")
    op.drop_table("merchant_referrals")
    op.drop_table("merchants")

    op.execute("DROP TYPE IF EXISTS cycle_payout_status")
    op.execute("DROP TYPE IF EXISTS reward_tier")
    op.execute("DROP TYPE IF EXISTS reward_period")
    op.execute("DROP TYPE IF EXISTS merchant_status")
