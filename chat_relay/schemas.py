"""Pydantic data schemas used across the relay.

Inbound frames, store records and the session binding all live here so the
core modules and the stores import them from one place.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

_user_id_adapter = TypeAdapter(int)


def coerce_user_id(value: Any) -> Optional[int]:
    """Return *value* as an integer user id, or ``None`` if it is not one.

    Integers, integral floats and numeric strings go through pydantic's lax
    int parsing. Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        return _user_id_adapter.validate_python(value)
    except ValidationError:
        return None


# -----------------------------
# Runtime
# -----------------------------

class Session(BaseModel):
    """The identity a connection registered with."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    room_id: str


# -----------------------------
# Inbound frames
# -----------------------------

class RegisterFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    user_id: int = Field(alias="userId")

    @field_validator("room_id", mode="before")
    @classmethod
    def _room_id_is_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("roomId must be a non-empty string")
        return value

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id_is_integral(cls, value: Any) -> int:
        user_id = coerce_user_id(value)
        if user_id is None:
            raise ValueError("userId must be an integer")
        return user_id


class MessageFrame(BaseModel):
    """A chat message frame.

    Parsing never fails: malformed fields become ``None`` and are caught later
    by the context check (``roomId`` / ``user_id``) or the text check.
    """

    model_config = ConfigDict(populate_by_name=True)

    room_id: Optional[str] = Field(default=None, alias="roomId")
    user_id: Optional[int] = None
    text: Optional[str] = None

    @field_validator("room_id", "text", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("user_id", mode="before")
    @classmethod
    def _lenient_user_id(cls, value: Any) -> Optional[int]:
        return coerce_user_id(value)


# -----------------------------
# Store records
# -----------------------------

class RoomRecord(BaseModel):
    id: str
    authorized_user_ids: List[int] = []

    def authorizes(self, user_id: int) -> bool:
        return user_id in self.authorized_user_ids


class NewChat(BaseModel):
    text: str
    user_id: int
    room_id: str
    created_at: datetime


class ChatRecord(BaseModel):
    """A persisted chat message as returned by the chat store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    text: str
    created_at: datetime = Field(alias="createdAt")
    user_id: int = Field(alias="userId")
    room_id: str = Field(alias="roomId")

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready representation with the client-facing camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# -----------------------------
# REST responses
# -----------------------------

class HealthResponse(BaseModel):
    status: str = "ok"
    connections: int
    rooms: int


class RoomMembersResponse(BaseModel):
    room_id: str
    user_ids: List[int]


__all__ = [
    "coerce_user_id",
    # runtime
    "Session",
    # frames
    "RegisterFrame",
    "MessageFrame",
    # stores
    "RoomRecord",
    "NewChat",
    "ChatRecord",
    # rest
    "HealthResponse",
    "RoomMembersResponse",
]
