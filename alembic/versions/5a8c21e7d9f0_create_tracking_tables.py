"""Create targets, daily_goals, todo_items and rollover_runs tables

Revision ID: 5a8c21e7d9f0
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5a8c21e7d9f0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the voice-tracking tables."""
    op.create_table(
        "targets",
        sa.Column("guild_id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column("target_seconds", sa.BigInteger(), nullable=False),
        sa.Column("accumulated_seconds", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("session_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_targets_session_start", "targets", ["session_start"])

    op.create_table(
        "daily_goals",
        sa.Column("guild_id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column("goal_hours", sa.Float(), nullable=False),
        sa.Column("achieved_seconds", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("session_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accounted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "todo_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_todo_items_owner", "todo_items", ["guild_id", "user_id"])

    op.create_table(
        "rollover_runs",
        sa.Column("run_date", sa.String(10), primary_key=True),
        sa.Column(
            "ran_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    """Drop the voice-tracking tables."""
    op.drop_table("rollover_runs")

    op.drop_index("ix_todo_items_owner", table_name="todo_items")
    op.drop_table("todo_items")

    op.drop_table("daily_goals")

    op.drop_index("ix_targets_session_start", table_name="targets")
    op.drop_table("targets")
