from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request

from plus_api.core.config import get_tebex_webhook_secret
from plus_api.core.logs import emit

from .schemas import RestoreOut, WebhookAckOut
from .service import handle_webhook, restore_purchases
from .tebex.events import WebhookParsingError, WebhookPayload, parse_payload
from .tebex.plugin_api import TebexPluginClient, get_plugin_client
from .tebex.signature import SIGNATURE_HEADER, WebhookValidationError, verify_signature

router = APIRouter(prefix="/payments", tags=["payments"])


async def verified_webhook_payload(request: Request) -> WebhookPayload:
    # raw bytes: the signature covers the body exactly as sent
    body = await request.body()
    try:
        verify_signature(body, request.headers.get(SIGNATURE_HEADER), get_tebex_webhook_secret())
    except WebhookValidationError as e:
        emit("warning", "payments.webhook.rejected", e.message, __name__, error=e.error)
        raise
    try:
        return parse_payload(body)
    except WebhookParsingError as e:
        emit("warning", "payments.webhook.unparseable", e.message, __name__)
        emit("debug", "payments.webhook.raw_body", "raw webhook body", __name__, body=body.decode("utf-8", "replace"))
        raise


@router.post("/tebex-webhook", response_model=WebhookAckOut)
def api_tebex_webhook(payload: WebhookPayload = Depends(verified_webhook_payload)) -> WebhookAckOut:
    # storage failures propagate as 500 so Tebex redelivers
    handle_webhook(payload)
    return WebhookAckOut(id=payload.id)


@router.post("/restore", response_model=RestoreOut)
def api_restore(
    player: uuid.UUID = Query(..., description="UUID of the player whose purchases to restore"),
    client: TebexPluginClient = Depends(get_plugin_client),
) -> RestoreOut:
    return RestoreOut(restored_ids=restore_purchases(player, client))
