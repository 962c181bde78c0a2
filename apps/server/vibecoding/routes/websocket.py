"""WebSocket endpoint the remote clients subscribe to."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from vibecoding_shared.contracts import WS_PATH, parse_message

if TYPE_CHECKING:
    from ..service import VibeService

LOGGER = logging.getLogger(__name__)


def create_websocket_routes(service: VibeService) -> APIRouter:
    router = APIRouter()

    @router.websocket(WS_PATH)
    async def ws_endpoint(ws: WebSocket) -> None:
        await ws.accept()
        await service.hub.add(ws)
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is None or parse_message(raw) is None:
                    LOGGER.debug("Ignoring malformed WS message")
                    continue
                # Clients have nothing to say yet; well-formed frames are ignored too.
        except WebSocketDisconnect:
            LOGGER.debug("WebSocket client disconnected")
        except Exception:
            LOGGER.warning("WebSocket handler error", exc_info=True)
        finally:
            await service.hub.remove_after_settle(ws)

    return router
