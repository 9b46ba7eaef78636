"""wardrobe

Revision ID: 0001_wardrobe
Revises: 
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_wardrobe"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wardrobe",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("image_data", sa.Text(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("timestamp", sa.String(length=40), nullable=False),
        sa.Column("order", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_wardrobe_timestamp", "wardrobe", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_wardrobe_timestamp", table_name="wardrobe")
    op.drop_table("wardrobe")
