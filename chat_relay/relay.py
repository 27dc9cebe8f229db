from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from .constants import MESSAGE_SENT, NEW_MESSAGE
from .errors import ContextMismatch, InvalidRequest, NotRegistered, RoomNotFound, SendFailure
from .logger import get_logger
from .schemas import ChatRecord, MessageFrame, NewChat
from .sessions import ROOM_LOOKUP_FAILED
from .state import Connection, RelayState
from .stores import ChatStore, RoomStore, bounded

logger = get_logger(__name__)


class MessageRelay:
    """Persists chat messages and fans them out to the rest of the room."""

    def __init__(
        self,
        state: RelayState,
        room_store: RoomStore,
        chat_store: ChatStore,
        store_timeout: float = 5.0,
        send_timeout: float = 5.0,
    ):
        self.state = state
        self.room_store = room_store
        self.chat_store = chat_store
        self.store_timeout = store_timeout
        self.send_timeout = send_timeout

    async def send(self, connection: Connection, payload: Dict[str, Any]) -> ChatRecord:
        """Handle one ``message`` frame from *connection*.

        The sender gets ``message-sent`` with the persisted chat, everyone else
        in the room gets ``new-message``.
        """
        session = self.state.session_of(connection)
        if session is None:
            raise NotRegistered()

        frame = MessageFrame.model_validate(payload)
        if frame.room_id != session.room_id or frame.user_id != session.user_id:
            logger.warning(
                "Context mismatch: session (%s, %s) sent as (%s, %s)",
                session.room_id, session.user_id, frame.room_id, frame.user_id,
            )
            raise ContextMismatch()
        if frame.text is None:
            raise InvalidRequest("Missing or invalid text")

        # The room may have been deleted since registration.
        room = await bounded(
            self.room_store.find_room(session.room_id), self.store_timeout, ROOM_LOOKUP_FAILED
        )
        if room is None:
            raise RoomNotFound()

        chat = await bounded(
            self.chat_store.create_message(
                NewChat(
                    text=frame.text,
                    user_id=session.user_id,
                    room_id=session.room_id,
                    created_at=datetime.now(timezone.utc),
                )
            ),
            self.store_timeout,
        )
        payload_chat = chat.to_payload()

        try:
            await connection.send_json({"type": MESSAGE_SENT, "chat": payload_chat})
        except Exception as exc:
            # Already persisted; the rest of the room still gets it.
            logger.warning("Could not acknowledge chat %s to its sender: %s", chat.id, exc)

        delivered = await self.broadcast(connection, session.room_id, {"type": NEW_MESSAGE, "chat": payload_chat})
        logger.debug("Chat %s in room %s delivered to %d recipient(s)", chat.id, session.room_id, delivered)
        return chat

    async def broadcast(self, sender: Connection, room_id: str, message: Dict[str, Any]) -> int:
        """Send *message* to every other open, registered connection in *room_id*.

        Returns the number of recipients that accepted the frame.
        """
        delivered = 0
        for conn, session in self.state.recipients(room_id, exclude=sender):
            # A close may have interleaved with an earlier send.
            if self.state.session_of(conn) != session or session.user_id not in self.state.members_of(room_id):
                continue
            if not conn.is_open:
                continue
            try:
                await self._deliver(conn, message)
            except SendFailure as exc:
                logger.warning("%s to user %s in room %s: %s", exc.message, session.user_id, room_id, exc.__cause__)
                continue
            delivered += 1
        return delivered

    async def _deliver(self, conn: Connection, message: Dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(conn.send_json(message), self.send_timeout)
        except asyncio.TimeoutError as exc:
            raise SendFailure(f"Send timed out after {self.send_timeout:.1f}s") from exc
        except Exception as exc:
            raise SendFailure() from exc


__all__ = ["MessageRelay"]
