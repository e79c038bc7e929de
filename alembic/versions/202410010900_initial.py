"""initial schema

Revision ID: 202410010900
Revises:
Create Date: 2024-10-01 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202410010900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "expenses",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("title", sa.Text()),
        sa.Column("amount", sa.Float()),
        sa.Column("category", sa.Text()),
        sa.Column("occurredAtEpochMs", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_expenses_occurredAtEpochMs", "expenses", ["occurredAtEpochMs"]
    )
    op.create_index("ix_expenses_category", "expenses", ["category"])

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
    )


def downgrade():
    op.drop_table("app_settings")
    op.drop_index("ix_expenses_category", table_name="expenses")
    op.drop_index("ix_expenses_occurredAtEpochMs", table_name="expenses")
    op.drop_table("expenses")
