"""Create reset and verification token tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "reset_token",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("code_hash", sa.String(length=128), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reset_token_user_id"), "reset_token", ["user_id"], unique=True)

    op.create_table(
        "verification_token",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_verification_token_user_id"), "verification_token", ["user_id"], unique=True)
    op.create_index(op.f("ix_verification_token_token_hash"), "verification_token", ["token_hash"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_verification_token_token_hash"), table_name="verification_token")
    op.drop_index(op.f("ix_verification_token_user_id"), table_name="verification_token")
    op.drop_table("verification_token")
    op.drop_index(op.f("ix_reset_token_user_id"), table_name="reset_token")
    op.drop_table("reset_token")
