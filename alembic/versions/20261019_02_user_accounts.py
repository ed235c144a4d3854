"""User accounts and merchant virtual account summary.

Revision ID: 20261019_02
Revises: 20261019_01
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_02"
down_revision: Union[str, None] = "20261019_01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_accounts",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("wallet", sa.JSON(), nullable=True),
        sa.Column("wallet_balance", sa.Numeric(14, 2), nullable=True),
        sa.Column("virtual_account", sa.JSON(), nullable=True),
        sa.Column("is_merchant", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("merchant_status", sa.Enum(name="merchant_status", create_type=False), nullable=True),
        sa.Column("merchant_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.add_column("merchants", sa.Column("virtual_account_summary", sa.JSON(), nullable=True))


def downgrade() -> None:
    op.drop_column("merchants", "virtual_account_summary")
    op.drop_table("user_accounts")
