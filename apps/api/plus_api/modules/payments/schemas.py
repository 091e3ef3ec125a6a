from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class WebhookAckOut(BaseModel):
    # Tebex marks a delivery successful only on 200 with exactly the envelope id
    id: str


class RestoreOut(BaseModel):
    # transaction ids behind entitlements newly created by this restore
    restored_ids: List[str] = Field(default_factory=list)
