"""Error taxonomy for the relay core.

Every error carries the message that is sent back to the client inside an
``{"type": "error", "message": ...}`` frame. They are raised by the session
manager and the message relay and caught at the dispatcher boundary only.
"""
from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for errors reported to the originating connection."""

    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidJSON(RelayError):
    default_message = "Invalid JSON"


class InvalidRequest(RelayError):
    default_message = "Missing or invalid roomId or userId"


class RoomNotFound(RelayError):
    default_message = "Room not found"


class Unauthorized(RelayError):
    default_message = "Unauthorized user or room"


class NotRegistered(RelayError):
    default_message = "Client not registered"


class ContextMismatch(RelayError):
    default_message = "Invalid room or user context"


class PersistenceError(RelayError):
    default_message = "Failed to save message"


class UnknownType(RelayError):
    default_message = "Unknown message type"


class UnexpectedError(RelayError):
    default_message = "Server error"


class SendFailure(RelayError):
    """A single fan-out recipient could not be reached. Never sent to clients."""

    default_message = "Failed to deliver message"


__all__ = [
    "RelayError",
    "InvalidJSON",
    "InvalidRequest",
    "RoomNotFound",
    "Unauthorized",
    "NotRegistered",
    "ContextMismatch",
    "PersistenceError",
    "UnknownType",
    "UnexpectedError",
    "SendFailure",
]
