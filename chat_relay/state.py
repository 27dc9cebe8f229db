"""In-memory runtime state of the relay.

``ConnectionRegistry`` is the source of truth for connection -> session and
``RoomIndex`` is the room -> members projection used for fan-out. Both are
owned by a single ``RelayState`` which is the only thing allowed to mutate
them, so that every change touches both structures in the same synchronous
step.
"""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Hashable, List, Optional, Protocol, Tuple, runtime_checkable

from .schemas import Session


@runtime_checkable
class Connection(Protocol):
    """A live transport endpoint as seen by the core."""

    @property
    def is_open(self) -> bool: ...

    async def send_json(self, payload: Dict[str, Any]) -> None: ...


class ConnectionRegistry:
    """Maps each live connection to the session it registered."""

    def __init__(self) -> None:
        self._sessions: Dict[Hashable, Session] = {}

    def register(self, connection: Hashable, user_id: int, room_id: str) -> Optional[Session]:
        """Bind *connection* to ``(user_id, room_id)``, returning the replaced session."""
        previous = self._sessions.get(connection)
        self._sessions[connection] = Session(user_id=user_id, room_id=room_id)
        return previous

    def lookup(self, connection: Hashable) -> Optional[Session]:
        return self._sessions.get(connection)

    def unregister(self, connection: Hashable) -> Optional[Session]:
        return self._sessions.pop(connection, None)

    def iterate(self) -> List[Tuple[Hashable, Session]]:
        """Snapshot of every registered connection.

        Entries may be unregistered while the caller walks the snapshot, so
        callers that await in between must re-check with :meth:`lookup`.
        """
        return list(self._sessions.items())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection: object) -> bool:
        return connection in self._sessions


class RoomIndex:
    """Room id -> user ids with at least one live session in that room.

    A user may be connected to the same room more than once, so each member
    carries a connection count and only leaves the set when it drops to zero.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[int, int]] = {}

    def add(self, room_id: str, user_id: int) -> None:
        members = self._rooms.setdefault(room_id, {})
        members[user_id] = members.get(user_id, 0) + 1

    def remove(self, room_id: str, user_id: int) -> None:
        members = self._rooms.get(room_id)
        if members is None or user_id not in members:
            return
        members[user_id] -= 1
        if members[user_id] <= 0:
            del members[user_id]
        if not members:
            del self._rooms[room_id]

    def members_of(self, room_id: str) -> FrozenSet[int]:
        return frozenset(self._rooms.get(room_id, ()))

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)


class RelayState:
    """Owns the registry and the room index and keeps them consistent.

    None of the methods await, so a caller never observes the registry and
    the index out of step.
    """

    def __init__(self) -> None:
        self.registry = ConnectionRegistry()
        self.rooms = RoomIndex()

    # -------------------- Mutations -------------------- #

    def bind(self, connection: Hashable, user_id: int, room_id: str) -> Optional[Session]:
        """Register *connection*, dropping the membership of any previous session."""
        previous = self.registry.register(connection, user_id, room_id)
        if previous is not None:
            self.rooms.remove(previous.room_id, previous.user_id)
        self.rooms.add(room_id, user_id)
        return previous

    def release(self, connection: Hashable) -> Optional[Session]:
        """Forget *connection*. Idempotent."""
        session = self.registry.unregister(connection)
        if session is not None:
            self.rooms.remove(session.room_id, session.user_id)
        return session

    # -------------------- Queries -------------------- #

    def session_of(self, connection: Hashable) -> Optional[Session]:
        return self.registry.lookup(connection)

    def members_of(self, room_id: str) -> FrozenSet[int]:
        return self.rooms.members_of(room_id)

    def recipients(self, room_id: str, exclude: Optional[Hashable] = None) -> List[Tuple[Hashable, Session]]:
        """Registered connections in *room_id*, other than *exclude*."""
        members = self.rooms.members_of(room_id)
        if not members:
            return []
        return [
            (conn, session)
            for conn, session in self.registry.iterate()
            if conn is not exclude and session.room_id == room_id and session.user_id in members
        ]


__all__ = ["Connection", "ConnectionRegistry", "RoomIndex", "RelayState"]
