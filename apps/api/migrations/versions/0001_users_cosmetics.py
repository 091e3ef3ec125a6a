"""users, cosmetics, user_cosmetics

Revision ID: 0001_users_cosmetics
Revises:
Create Date: 2025-09-17
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_users_cosmetics"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("minecraft_uuid", sa.Text(), nullable=False),
    )
    op.create_index("ix_users_minecraft_uuid", "users", ["minecraft_uuid"], unique=True)

    op.create_table(
        "cosmetics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "type",
            sa.Enum("cape", "emote", name="cosmetic_type", native_enum=False, create_constraint=True),
            nullable=False,
        ),
        sa.Column("path", sa.Text(), nullable=True),
    )
    op.create_index("ix_cosmetics_type", "cosmetics", ["type"], unique=False)

    op.create_table(
        "user_cosmetics",
        sa.Column("user_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("cosmetic_id", sa.Integer(), sa.ForeignKey("cosmetics.id"), nullable=False),
        sa.Column("transaction_id", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "cosmetic_id"),
    )


def downgrade() -> None:
    op.drop_table("user_cosmetics")
    op.drop_index("ix_cosmetics_type", table_name="cosmetics")
    op.drop_table("cosmetics")
    op.drop_index("ix_users_minecraft_uuid", table_name="users")
    op.drop_table("users")
