from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import Column, Enum
from sqlmodel import Field, SQLModel


class CosmeticType(str, enum.Enum):
    cape = "cape"
    emote = "emote"


# read-only here; rows come from the asset management path
class Cosmetic(SQLModel, table=True):
    __tablename__ = "cosmetics"

    id: Optional[int] = Field(default=None, primary_key=True)
    # closed set, enforced by a CHECK constraint; rows load as plain strings
    type: str = Field(
        sa_column=Column(
            "type",
            Enum(*[c.value for c in CosmeticType], name="cosmetic_type", native_enum=False, create_constraint=True),
            nullable=False,
            index=True,
        )
    )
    path: Optional[str] = Field(default=None)  # None = no asset bound yet


# at most one row per (user_id, cosmetic_id), ever
class UserCosmetic(SQLModel, table=True):
    __tablename__ = "user_cosmetics"

    user_id: str = Field(foreign_key="users.id", primary_key=True)
    cosmetic_id: int = Field(foreign_key="cosmetics.id", primary_key=True)
    transaction_id: str  # provenance, set once at grant time
    active: bool = Field(default=False)


class CosmeticPackage(SQLModel, table=True):
    __tablename__ = "cosmetic_packages"

    package_id: int = Field(primary_key=True)
    cosmetic_id: int = Field(foreign_key="cosmetics.id", primary_key=True)
