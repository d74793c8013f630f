"""create subscriptions

Revision ID: 004
Revises: 003
Create Date: 2025-03-03

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("started_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("payment_reference", sa.String(100), nullable=True),
        sa.UniqueConstraint("payment_reference", name="uq_subscriptions_payment_reference"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_subscriptions_user_id_expires_at", "subscriptions", ["user_id", "expires_at"])


def downgrade() -> None:
    op.drop_index("ix_subscriptions_user_id_expires_at", table_name="subscriptions")
    op.drop_table("subscriptions")
