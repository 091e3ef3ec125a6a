from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import false, select, update

from plus_api.core.cache import TTLCache
from plus_api.core.config import get_cosmetic_cache_ttl
from plus_api.core.db import session_scope
from plus_api.core.errors import ApiError
from plus_api.core.logs import emit
from plus_api.core.storage import asset_etag, asset_url
from plus_api.modules.accounts.models import User
from plus_api.modules.accounts.service import PlayerId, canonical_player_id, get_or_create

from .models import Cosmetic, CosmeticType, UserCosmetic
from .schemas import ActiveByPlayer, ActiveCosmeticsOut, CosmeticInfoOut, PlayerCosmeticsOut

# md5("null"): the hash of a cosmetic with no asset
DEFAULT_HASH = "37a6259cc0c1dae299a7866489dff0bd"


class PlayerRequiredError(ApiError):
    status_code = 400
    error = "player_required"


class InvalidCosmeticError(ApiError):
    status_code = 400
    error = "invalid_cosmetic"

    def __init__(self, category: str, cosmetic_id: int) -> None:
        super().__init__(
            f"The given ID {cosmetic_id} is invalid for cosmetic type {category}",
            details={"category": category, "id": cosmetic_id},
        )


class CosmeticNotOwnedError(ApiError):
    status_code = 403
    error = "cosmetic_not_owned"

    def __init__(self, category: str, cosmetic_id: int) -> None:
        super().__init__(
            f"The given ID {cosmetic_id} for cosmetic type {category} is not owned by this player",
            details={"category": category, "id": cosmetic_id},
        )


# -------------------------
# display metadata
# -------------------------
_info_cache: Optional[TTLCache[int, str]] = None


def get_info_cache() -> TTLCache[int, str]:
    global _info_cache
    if _info_cache is None:
        _info_cache = TTLCache(ttl_seconds=get_cosmetic_cache_ttl())
    return _info_cache


def _asset_hash(cosmetic: Cosmetic) -> str:
    if not cosmetic.path:
        return DEFAULT_HASH
    etag = asset_etag(cosmetic.path)
    if etag is None:
        emit("warning", "cosmetics.asset.missing", f"asset {cosmetic.path!r} not found", __name__, cosmetic_id=cosmetic.id)
        return DEFAULT_HASH
    return etag


def cosmetic_info(cosmetic: Cosmetic) -> CosmeticInfoOut:
    cache = get_info_cache()
    digest = cache.get(cosmetic.id)
    if digest is None:
        digest = _asset_hash(cosmetic)
        cache.insert(cosmetic.id, digest)
    return CosmeticInfoOut(
        id=cosmetic.id,
        type=CosmeticType(cosmetic.type),
        url=asset_url(cosmetic.path) if cosmetic.path else None,
        hash=digest,
    )


# -------------------------
# reads
# -------------------------
def list_cosmetics(category: Optional[CosmeticType] = None) -> List[CosmeticInfoOut]:
    stmt = select(Cosmetic).order_by(Cosmetic.id)
    if category is not None:
        stmt = stmt.where(Cosmetic.type == category.value)
    with session_scope() as session:
        cosmetics = list(session.scalars(stmt))
    return [cosmetic_info(c) for c in cosmetics]


def get_player_cosmetics(player: PlayerId) -> PlayerCosmeticsOut:
    key = canonical_player_id(player)
    stmt = (
        select(UserCosmetic.active, Cosmetic)
        .join(Cosmetic, Cosmetic.id == UserCosmetic.cosmetic_id)
        .join(User, User.id == UserCosmetic.user_id)
        .where(User.minecraft_uuid == key)
        .order_by(Cosmetic.id)
    )
    with session_scope() as session:
        rows = session.execute(stmt).all()

    out = PlayerCosmeticsOut()
    active: Dict[str, int] = {}
    for is_active, cosmetic in rows:
        if is_active:
            active[cosmetic.type] = cosmetic.id
        out.cosmetics.append(cosmetic_info(cosmetic))
    out.active = ActiveCosmeticsOut(**active)
    return out


def active_cosmetics_for_players(players: Iterable[PlayerId]) -> ActiveByPlayer:
    """Active cosmetic ids per player; players with nothing active are absent."""
    keys = {canonical_player_id(p) for p in players}
    if not keys:
        return {}
    stmt = (
        select(User.minecraft_uuid, UserCosmetic.cosmetic_id)
        .join(UserCosmetic, UserCosmetic.user_id == User.id)
        .join(Cosmetic, Cosmetic.id == UserCosmetic.cosmetic_id)
        .where(User.minecraft_uuid.in_(keys))
        .where(UserCosmetic.active.is_(True))
        .where(Cosmetic.type.in_([c.value for c in CosmeticType]))
        .order_by(User.minecraft_uuid, UserCosmetic.cosmetic_id)
    )
    out: ActiveByPlayer = {}
    with session_scope() as session:
        for minecraft_uuid, cosmetic_id in session.execute(stmt):
            out.setdefault(minecraft_uuid, []).append(cosmetic_id)
    return out


# -------------------------
# active selection
# -------------------------
def set_active_cosmetics(player: PlayerId, updates: Iterable[Tuple[str, Optional[int]]]) -> None:
    """
    Apply a partial category -> id|None update for one player, all or nothing.

    Every requested id is checked (exists, right category, owned by the
    player) in one batch before any row changes. Setting an id writes
    `active = (cosmetic_id = id)` across the player's edges of that category,
    so the previous active edge is cleared by the same statement.
    """
    updates = list(updates)
    requested = {cid for _, cid in updates if cid is not None}

    with session_scope() as session:
        user = get_or_create(session, player)

        valid: Set[Tuple[int, str]] = set()
        owned: Set[int] = set()
        if requested:
            valid = {
                (cid, ctype)
                for cid, ctype in session.execute(
                    select(Cosmetic.id, Cosmetic.type).where(Cosmetic.id.in_(requested))
                )
            }
            owned = set(
                session.scalars(
                    select(UserCosmetic.cosmetic_id)
                    .where(UserCosmetic.user_id == user.id)
                    .where(UserCosmetic.cosmetic_id.in_(requested))
                )
            )

        for category, cid in updates:
            if cid is None:
                continue
            if (cid, category) not in valid:
                raise InvalidCosmeticError(category, cid)
            if cid not in owned:
                raise CosmeticNotOwnedError(category, cid)

        for category, cid in updates:
            in_category = select(Cosmetic.id).where(Cosmetic.type == category)
            session.execute(
                update(UserCosmetic)
                .where(UserCosmetic.user_id == user.id)
                .where(UserCosmetic.cosmetic_id.in_(in_category))
                .values(active=(UserCosmetic.cosmetic_id == cid) if cid is not None else false())
                .execution_options(synchronize_session=False)
            )

    emit(
        "info",
        "cosmetics.active.updated",
        f"active cosmetics updated for player {canonical_player_id(player)}",
        __name__,
        updates={category: cid for category, cid in updates},
    )
