"""Room / membership and chat persistence behind narrow interfaces.

The relay core only talks to :class:`RoomStore` and :class:`ChatStore`; the
Tortoise ORM implementations below are what the application wires in.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, Protocol, TypeVar

from .errors import PersistenceError
from .logger import get_logger
from .models import Chat, Room
from .schemas import ChatRecord, NewChat, RoomRecord

logger = get_logger(__name__)

T = TypeVar("T")


class RoomStore(Protocol):
    async def find_room(self, room_id: str) -> Optional[RoomRecord]: ...


class ChatStore(Protocol):
    async def create_message(self, chat: NewChat) -> ChatRecord: ...


async def bounded(call: Awaitable[T], timeout: float, failure_message: Optional[str] = None) -> T:
    """Await a store call, turning a timeout or store error into ``PersistenceError``."""
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError:
        logger.warning("Store call timed out after %.1fs", timeout)
        raise PersistenceError(failure_message)
    except PersistenceError:
        raise
    except Exception as exc:
        logger.error("Store call failed: %s", exc)
        raise PersistenceError(failure_message) from exc


# -----------------------------
# Tortoise ORM implementations
# -----------------------------

class TortoiseRoomStore:
    async def find_room(self, room_id: str) -> Optional[RoomRecord]:
        room = await Room.filter(id=room_id).prefetch_related("users").first()
        if room is None:
            return None
        return RoomRecord(id=room.id, authorized_user_ids=[u.id for u in room.users])


class TortoiseChatStore:
    async def create_message(self, chat: NewChat) -> ChatRecord:
        row = await Chat.create(
            text=chat.text,
            created_at=chat.created_at,
            user_id=chat.user_id,
            room_id=chat.room_id,
        )
        return ChatRecord(
            id=row.id,
            text=row.text,
            created_at=row.created_at,
            user_id=chat.user_id,
            room_id=chat.room_id,
        )


__all__ = [
    "RoomStore",
    "ChatStore",
    "bounded",
    "TortoiseRoomStore",
    "TortoiseChatStore",
]
