"""user_cosmetics.active

Revision ID: 0003_active_cosmetics
Revises: 0002_cosmetic_packages
Create Date: 2025-10-14
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0003_active_cosmetics"
down_revision = "0002_cosmetic_packages"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("user_cosmetics") as batch:
        batch.add_column(sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()))


def downgrade() -> None:
    with op.batch_alter_table("user_cosmetics") as batch:
        batch.drop_column("active")
