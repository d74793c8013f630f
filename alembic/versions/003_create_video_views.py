"""create video_views: one counter row per (user, video)

Revision ID: 003
Revises: 002
Create Date: 2025-03-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "video_views",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("video_id", sa.String(36), sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_viewed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        # Conflict target of the atomic view upsert
        sa.UniqueConstraint("user_id", "video_id", name="uq_video_views_user_video"),
        sa.CheckConstraint("view_count >= 0", name="ck_video_views_view_count_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("video_views")
