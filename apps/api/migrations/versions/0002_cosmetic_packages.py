"""package -> cosmetic mapping

Revision ID: 0002_cosmetic_packages
Revises: 0001_users_cosmetics
Create Date: 2025-09-28
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_cosmetic_packages"
down_revision = "0001_users_cosmetics"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cosmetic_packages",
        sa.Column("package_id", sa.Integer(), nullable=False),
        sa.Column("cosmetic_id", sa.Integer(), sa.ForeignKey("cosmetics.id"), nullable=False),
        sa.PrimaryKeyConstraint("package_id", "cosmetic_id"),
    )


def downgrade() -> None:
    op.drop_table("cosmetic_packages")
