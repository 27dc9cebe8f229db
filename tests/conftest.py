"""Shared fakes for the relay tests: connections and in-memory stores."""
from __future__ import annotations

from itertools import count
from typing import Any, Dict, Iterable, List, Optional

import pytest

from chat_relay.dispatcher import ProtocolDispatcher
from chat_relay.schemas import ChatRecord, NewChat, RoomRecord
from chat_relay.state import RelayState


class FakeConnection:
    """Records every frame sent to it."""

    def __init__(self, name: str = "conn", fail_sends: bool = False):
        self.name = name
        self.open = True
        self.fail_sends = fail_sends
        self.sent: List[Dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_json(self, payload: Dict[str, Any]) -> None:
        if self.fail_sends:
            raise ConnectionError(f"{self.name} is broken")
        self.sent.append(payload)

    def types(self) -> List[str]:
        return [frame["type"] for frame in self.sent]

    def last(self) -> Dict[str, Any]:
        return self.sent[-1]

    def __repr__(self) -> str:
        return f"<FakeConnection {self.name}>"


class InMemoryRoomStore:
    def __init__(self, rooms: Optional[Dict[str, Iterable[int]]] = None):
        self.rooms: Dict[str, List[int]] = {rid: list(users) for rid, users in (rooms or {}).items()}
        self.lookups: List[str] = []

    async def find_room(self, room_id: str) -> Optional[RoomRecord]:
        self.lookups.append(room_id)
        users = self.rooms.get(room_id)
        if users is None:
            return None
        return RoomRecord(id=room_id, authorized_user_ids=users)


class InMemoryChatStore:
    def __init__(self) -> None:
        self.created: List[ChatRecord] = []
        self._ids = count(1)

    async def create_message(self, chat: NewChat) -> ChatRecord:
        record = ChatRecord(
            id=next(self._ids),
            text=chat.text,
            created_at=chat.created_at,
            user_id=chat.user_id,
            room_id=chat.room_id,
        )
        self.created.append(record)
        return record


@pytest.fixture
def room_store() -> InMemoryRoomStore:
    return InMemoryRoomStore({"r1": [1, 2, 3], "r2": [1, 4]})


@pytest.fixture
def chat_store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def state() -> RelayState:
    return RelayState()


@pytest.fixture
def dispatcher(state, room_store, chat_store) -> ProtocolDispatcher:
    return ProtocolDispatcher(state, room_store, chat_store, store_timeout=1.0)


def register_frame(room_id: Any, user_id: Any) -> Dict[str, Any]:
    return {"type": "register", "roomId": room_id, "userId": user_id}


def message_frame(room_id: Any, user_id: Any, text: Any = "hi") -> Dict[str, Any]:
    return {"type": "message", "roomId": room_id, "user_id": user_id, "text": text}


def assert_index_consistent(state: RelayState) -> None:
    """The room index must be exactly the projection of the registry."""
    expected: Dict[str, set] = {}
    for _, session in state.registry.iterate():
        expected.setdefault(session.room_id, set()).add(session.user_id)
    assert sorted(state.rooms.room_ids()) == sorted(expected)
    for room_id, users in expected.items():
        assert state.members_of(room_id) == users

