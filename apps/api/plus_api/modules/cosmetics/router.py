from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from plus_api.modules.accounts.auth import optional_player, require_player

from .models import CosmeticType
from .schemas import ActiveCosmeticsPutIn, CapesListOut, CosmeticsListOut, PlayerCosmeticsOut
from .service import PlayerRequiredError, get_player_cosmetics, list_cosmetics, set_active_cosmetics

router = APIRouter(prefix="/cosmetics", tags=["cosmetics"])


@router.get("", response_model=CosmeticsListOut, response_model_exclude_none=True)
def api_list_cosmetics() -> CosmeticsListOut:
    return CosmeticsListOut(cosmetics=list_cosmetics())


@router.get("/capes", response_model=CapesListOut, response_model_exclude_none=True)
def api_list_capes() -> CapesListOut:
    return CapesListOut(capes=list_cosmetics(CosmeticType.cape))


@router.get("/player", response_model=PlayerCosmeticsOut)
def api_player_cosmetics(
    player: Optional[uuid.UUID] = Query(None, description="UUID of the player; defaults to the token's player"),
    token_player: Optional[uuid.UUID] = Depends(optional_player),
) -> PlayerCosmeticsOut:
    target = player or token_player
    if target is None:
        raise PlayerRequiredError("A player UUID or an Authorization header is required")
    return get_player_cosmetics(target)


@router.put("/player", status_code=204, response_class=Response)
def api_set_active_cosmetics(
    body: ActiveCosmeticsPutIn,
    player: uuid.UUID = Depends(require_player),
) -> Response:
    set_active_cosmetics(player, body.active.items())
    return Response(status_code=204)
