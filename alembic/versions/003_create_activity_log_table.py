"""Create activity log table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("target", sa.String(length=256), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_log_actor_id"), "activity_log", ["actor_id"], unique=False)
    op.create_index(op.f("ix_activity_log_action"), "activity_log", ["action"], unique=False)
    op.create_index(op.f("ix_activity_log_created_at"), "activity_log", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_activity_log_created_at"), table_name="activity_log")
    op.drop_index(op.f("ix_activity_log_action"), table_name="activity_log")
    op.drop_index(op.f("ix_activity_log_actor_id"), table_name="activity_log")
    op.drop_table("activity_log")
