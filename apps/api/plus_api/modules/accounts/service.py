from __future__ import annotations

import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from plus_api.core.db import insert_ignore
from plus_api.core.ids import new_ulid
from plus_api.core.logs import emit

from .models import User

PlayerId = Union[uuid.UUID, str]


def canonical_player_id(player: PlayerId) -> str:
    """Dashed lowercase form; accepts the undashed form the billing provider uses."""
    if isinstance(player, uuid.UUID):
        return str(player)
    return str(uuid.UUID(str(player).strip()))


def find_user(session: Session, player: PlayerId) -> Optional[User]:
    key = canonical_player_id(player)
    return session.scalars(select(User).where(User.minecraft_uuid == key)).first()


def get_or_create(session: Session, player: PlayerId) -> User:
    """
    Look up a user by game-account UUID, inserting one on first sight.

    Runs in the caller's transaction. The insert ignores a conflict on the
    unique minecraft_uuid, so a concurrent creator winning the race just
    means the row is re-read instead of failing the caller.
    """
    key = canonical_player_id(player)
    existing = find_user(session, key)
    if existing is not None:
        return existing

    insert_ignore(
        session,
        User,
        [{"id": new_ulid(), "minecraft_uuid": key}],
        index_elements=["minecraft_uuid"],
    )
    user = session.scalars(select(User).where(User.minecraft_uuid == key)).one()
    emit("info", "accounts.user.resolved", f"user {user.id} for player {key}", __name__, user_id=user.id, player=key)
    return user
