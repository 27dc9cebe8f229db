"""Entry points the transport layer calls for every connection event."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from .constants import ERROR, MESSAGE, REGISTER
from .errors import InvalidJSON, RelayError, UnexpectedError, UnknownType
from .logger import get_logger
from .relay import MessageRelay
from .sessions import SessionManager
from .state import Connection, RelayState
from .stores import ChatStore, RoomStore

logger = get_logger(__name__)


class ProtocolDispatcher:
    """Parses inbound frames and routes them to the session manager or relay.

    Nothing raised while handling a frame escapes :meth:`on_frame`; failures
    are reported to the originating connection as a single error frame and
    the connection stays usable.
    """

    def __init__(
        self,
        state: RelayState,
        room_store: RoomStore,
        chat_store: ChatStore,
        store_timeout: float = 5.0,
        send_timeout: float = 5.0,
        reject_unknown_types: bool = False,
    ):
        self.state = state
        self.sessions = SessionManager(state, room_store, store_timeout)
        self.relay = MessageRelay(state, room_store, chat_store, store_timeout, send_timeout)
        self.reject_unknown_types = reject_unknown_types

    # -------------------- Connection events -------------------- #

    async def on_connect(self, connection: Connection) -> None:
        logger.info("Client connected (%d registered)", len(self.state.registry))

    async def on_frame(self, connection: Connection, raw: Union[str, bytes]) -> None:
        if not connection.is_open:
            return
        try:
            await self._dispatch(connection, raw)
        except RelayError as exc:
            await self._reply_error(connection, exc)
        except Exception:
            logger.exception("Unexpected error while handling frame")
            await self._reply_error(connection, UnexpectedError())

    async def on_close(self, connection: Connection) -> None:
        self.sessions.close(connection)
        logger.info("Client disconnected")

    # -------------------- Routing -------------------- #

    async def _dispatch(self, connection: Connection, raw: Union[str, bytes]) -> None:
        logger.debug("Raw frame received: %r", raw)
        payload = self._parse(raw)

        frame_type = payload.get("type") if isinstance(payload, dict) else None
        if frame_type == REGISTER:
            await self.sessions.register(connection, payload)
        elif frame_type == MESSAGE:
            await self.relay.send(connection, payload)
        elif self.reject_unknown_types:
            raise UnknownType()
        else:
            logger.debug("Ignoring frame with type %r", frame_type)

    @staticmethod
    def _parse(raw: Union[str, bytes]) -> Optional[Any]:
        try:
            text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
            return json.loads(text)
        except (UnicodeDecodeError, ValueError, TypeError):
            raise InvalidJSON()

    async def _reply_error(self, connection: Connection, exc: RelayError) -> None:
        payload: Dict[str, Any] = {"type": ERROR, "message": exc.message}
        try:
            await connection.send_json(payload)
        except Exception as send_exc:
            logger.warning("Could not report error %r to client: %s", exc.message, send_exc)


__all__ = ["ProtocolDispatcher"]
