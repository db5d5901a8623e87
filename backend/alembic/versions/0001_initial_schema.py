"""Initial schema: users, revoke stats and revoke history.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:02:41

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "revoke_stats",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("total_revokes", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "total_value_secured",
            sa.Numeric(precision=20, scale=2),
            server_default="0",
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "revoke_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_address", sa.Text(), nullable=False),
        sa.Column("token_address", sa.Text(), nullable=False),
        sa.Column("token_symbol", sa.Text(), nullable=False),
        sa.Column("spender_address", sa.Text(), nullable=False),
        sa.Column(
            "value_secured",
            sa.Numeric(precision=20, scale=2),
            server_default="0",
            nullable=False,
        ),
        sa.Column("tx_hash", sa.String(length=66), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_revoke_history_created_at", "revoke_history", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_revoke_history_created_at", table_name="revoke_history")
    op.drop_table("revoke_history")
    op.drop_table("revoke_stats")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
