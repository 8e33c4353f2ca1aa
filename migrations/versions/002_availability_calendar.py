"""Availability calendar: blocked and available days, specialty blocks, suspensions.

Revision ID: 002_calendar
Revises: 001_initial
Create Date: 2025-12-12

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "002_calendar"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("suspended_until", sa.DateTime(timezone=True), nullable=True))

    op.create_table(
        "blocked_days",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("professional_id", sa.Uuid(), nullable=True),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["professional_id"], ["professionals.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_blocked_days_professional_id"), "blocked_days", ["professional_id"], unique=False)
    op.create_index(op.f("ix_blocked_days_day"), "blocked_days", ["day"], unique=False)

    op.create_table(
        "available_days",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("professional_id", sa.Uuid(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["professional_id"], ["professionals.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("professional_id", "day", name="uq_available_day"),
    )
    op.create_index(op.f("ix_available_days_professional_id"), "available_days", ["professional_id"], unique=False)
    op.create_index(op.f("ix_available_days_day"), "available_days", ["day"], unique=False)

    op.create_table(
        "user_specialty_blocks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("specialty_id", sa.Uuid(), nullable=False),
        sa.Column("blocked_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["specialty_id"], ["specialties.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "specialty_id", name="uq_user_specialty_block"),
    )
    op.create_index(op.f("ix_user_specialty_blocks_user_id"), "user_specialty_blocks", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_user_specialty_blocks_user_id"), table_name="user_specialty_blocks")
    op.drop_table("user_specialty_blocks")
    op.drop_index(op.f("ix_available_days_day"), table_name="available_days")
    op.drop_index(op.f("ix_available_days_professional_id"), table_name="available_days")
    op.drop_table("available_days")
    op.drop_index(op.f("ix_blocked_days_day"), table_name="blocked_days")
    op.drop_index(op.f("ix_blocked_days_professional_id"), table_name="blocked_days")
    op.drop_table("blocked_days")
    op.drop_column("users", "suspended_until")
