"""add daily streaks

Revision ID: 2026_10_19_02
Revises: 2026_10_19_01
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "2026_10_19_02"
down_revision = "2026_10_19_01"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "daily_streaks",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True, nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_completed_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table("daily_streaks")
