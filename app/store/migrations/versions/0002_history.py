"""history

Revision ID: 0002_history
Revises: 0001_wardrobe
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_history"
down_revision = "0001_wardrobe"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "history",
        sa.Column("timestamp", sa.String(length=40), primary_key=True),
        sa.Column("context", sa.Text(), nullable=False, server_default=""),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column("recommendation", sa.Text(), nullable=False, server_default=""),
        sa.Column("selected_items", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
    )
    op.create_index("ix_history_timestamp", "history", ["timestamp"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_history_timestamp", table_name="history")
    op.drop_table("history")
