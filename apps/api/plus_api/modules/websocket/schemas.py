from __future__ import annotations

import uuid
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


class GetActiveCosmeticsIn(BaseModel):
    """Server-bound: active cosmetics for a batch of players."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["GetActiveCosmetics"]
    players: List[uuid.UUID] = Field(default_factory=list)


class CosmeticsInfoOut(BaseModel):
    type: Literal["CosmeticsInfo"] = "CosmeticsInfo"
    # player uuid -> active cosmetic ids; players with nothing active are absent
    cosmetics: Dict[str, List[int]] = Field(default_factory=dict)


class ErrorPacketOut(BaseModel):
    type: Literal["Error"] = "Error"
    error_code: str
    message: str
