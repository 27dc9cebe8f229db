from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from .constants import REGISTER_SUCCESS
from .errors import InvalidRequest, RoomNotFound, Unauthorized
from .logger import get_logger
from .schemas import RegisterFrame, Session
from .state import Connection, RelayState
from .stores import RoomStore, bounded

logger = get_logger(__name__)

ROOM_LOOKUP_FAILED = "Room lookup failed"


class SessionManager:
    """Drives the Unregistered -> Registered -> Closed lifecycle of a connection."""

    def __init__(self, state: RelayState, room_store: RoomStore, store_timeout: float = 5.0):
        self.state = state
        self.room_store = room_store
        self.store_timeout = store_timeout

    async def register(self, connection: Connection, payload: Dict[str, Any]) -> Optional[Session]:
        """Authorize and bind *connection* to the room / user in *payload*.

        Returns the new session, or ``None`` if the connection went away while
        the room lookup was in flight.

        Raises
        ------
        InvalidRequest
            ``roomId`` or ``userId`` is missing or malformed.
        RoomNotFound
            The room does not exist.
        Unauthorized
            The user is not one of the room's authorized users.
        PersistenceError
            The room store failed or timed out.
        """
        try:
            frame = RegisterFrame.model_validate(payload)
        except ValidationError:
            raise InvalidRequest()

        room = await bounded(
            self.room_store.find_room(frame.room_id), self.store_timeout, ROOM_LOOKUP_FAILED
        )
        if room is None:
            raise RoomNotFound()
        if not room.authorizes(frame.user_id):
            logger.info("User %s is not authorized for room %s", frame.user_id, frame.room_id)
            raise Unauthorized()

        # The close handler may have run during the lookup; binding now would
        # leave a session nobody will ever release.
        if not connection.is_open:
            logger.debug("Connection closed before registration of user %s completed", frame.user_id)
            return None

        previous = self.state.bind(connection, frame.user_id, frame.room_id)
        if previous is not None:
            logger.info(
                "Connection re-registered from room %s (user %s) to room %s (user %s)",
                previous.room_id, previous.user_id, frame.room_id, frame.user_id,
            )
        else:
            logger.info("User %s registered in room %s", frame.user_id, frame.room_id)

        await connection.send_json(
            {"type": REGISTER_SUCCESS, "roomId": frame.room_id, "userId": frame.user_id}
        )
        return Session(user_id=frame.user_id, room_id=frame.room_id)

    def close(self, connection: Connection) -> Optional[Session]:
        """Drop whatever *connection* was registered as. Safe to call repeatedly."""
        session = self.state.release(connection)
        if session is not None:
            logger.info("User %s left room %s", session.user_id, session.room_id)
        return session


__all__ = ["SessionManager", "ROOM_LOOKUP_FAILED"]
