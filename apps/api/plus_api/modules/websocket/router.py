"""
Bulk read of active cosmetics over a websocket.

One JSON packet in, one JSON packet out. A malformed packet or a failed
query is answered with an Error packet and the connection stays open; only
a transport failure ends it.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from plus_api.core.logs import emit
from plus_api.modules.cosmetics.service import active_cosmetics_for_players

from .schemas import CosmeticsInfoOut, ErrorPacketOut, GetActiveCosmeticsIn

router = APIRouter(tags=["websocket"])


async def _send_error(ws: WebSocket, error_code: str, message: str) -> None:
    await ws.send_text(ErrorPacketOut(error_code=error_code, message=message).model_dump_json())


@router.websocket("/websocket")
async def websocket_endpoint(ws: WebSocket) -> None:
    conn_id = uuid.uuid4().hex.upper()
    await ws.accept()
    emit("debug", "websocket.connected", "websocket connection opened", __name__, request_id=conn_id)

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text") or message.get("bytes") or ""

            try:
                packet = GetActiveCosmeticsIn.model_validate_json(raw)
            except ValidationError as e:
                emit("debug", "websocket.packet.invalid", str(e), __name__, request_id=conn_id)
                await _send_error(ws, "invalid_packet", f"Unable to parse packet: {e.error_count()} error(s)")
                continue

            try:
                cosmetics = await run_in_threadpool(active_cosmetics_for_players, packet.players)
            except SQLAlchemyError as e:
                emit("error", "websocket.query.failed", str(e), __name__, request_id=conn_id)
                await _send_error(ws, "internal_server_error", "Unable to query database")
                continue

            await ws.send_text(CosmeticsInfoOut(cosmetics=cosmetics).model_dump_json())
    except WebSocketDisconnect:
        pass

    emit("debug", "websocket.disconnected", "websocket connection closed", __name__, request_id=conn_id)
