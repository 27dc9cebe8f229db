from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from ..dispatcher import ProtocolDispatcher
from ..logger import get_logger

router = APIRouter(prefix="", tags=["ws"])

logger = get_logger(__name__)


class WebSocketConnection:
    """Adapts a Starlette ``WebSocket`` to the connection interface of the core."""

    def __init__(self, ws: WebSocket):
        self.ws = ws

    @property
    def is_open(self) -> bool:
        return (
            self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.ws.send_json(payload)

    def __repr__(self) -> str:
        client = self.ws.client
        return f"<WebSocketConnection {client.host}:{client.port}>" if client else "<WebSocketConnection>"


@router.websocket("/")
async def relay_endpoint(ws: WebSocket):
    dispatcher: ProtocolDispatcher = ws.app.state.dispatcher
    await ws.accept()
    connection = WebSocketConnection(ws)
    await dispatcher.on_connect(connection)
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await dispatcher.on_frame(connection, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WebSocket error")
    finally:
        await dispatcher.on_close(connection)
