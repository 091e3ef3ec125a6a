from __future__ import annotations

from sqlmodel import Field, SQLModel


# created lazily on first purchase or first authenticated action; never deleted
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)  # ULID
    minecraft_uuid: str = Field(unique=True, index=True)  # canonical dashed lowercase
