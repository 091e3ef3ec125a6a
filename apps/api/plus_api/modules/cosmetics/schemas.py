from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .models import CosmeticType


class CosmeticInfoOut(BaseModel):
    id: int
    type: CosmeticType
    # omitted when the cosmetic has no asset yet
    url: Optional[str] = None
    # changes whenever the asset changes; format unspecified
    hash: str


class ActiveCosmeticsOut(BaseModel):
    cape: Optional[int] = None
    emote: Optional[int] = None


class PartialActiveCosmeticsIn(BaseModel):
    """
    Omitting a key keeps it the same, null unsets it, an id makes it active.
    """

    model_config = ConfigDict(extra="forbid")

    cape: Optional[int] = None
    emote: Optional[int] = None

    def items(self) -> Iterator[Tuple[str, Optional[int]]]:
        data = self.model_dump(exclude_unset=True)
        for category in CosmeticType:
            if category.value in data:
                yield category.value, data[category.value]


class ActiveCosmeticsPutIn(BaseModel):
    active: PartialActiveCosmeticsIn


class CosmeticsListOut(BaseModel):
    cosmetics: List[CosmeticInfoOut] = Field(default_factory=list)


class CapesListOut(BaseModel):
    capes: List[CosmeticInfoOut] = Field(default_factory=list)


class PlayerCosmeticsOut(BaseModel):
    cosmetics: List[CosmeticInfoOut] = Field(default_factory=list)
    active: ActiveCosmeticsOut = Field(default_factory=ActiveCosmeticsOut)


ActiveByPlayer = Dict[str, List[int]]
