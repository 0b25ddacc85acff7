"""Room event schema and a bounded in-memory event log."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from time import time
from typing import Any, Mapping

from .serialize import to_serializable

MAX_EVENTS_PER_ROOM = 200


class EventType(str, Enum):
    """Events emitted by the room manager, the state store and the AI processor."""

    ROOM_CREATED = "room_created"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    AI_ADDED = "ai_added"
    GAME_STARTED = "game_started"
    MOVE = "move"
    AI_MOVE = "ai_move"
    RESOLVED = "resolved"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class RoomEvent:
    """Single replay event for a room."""

    event_type: EventType
    room_id: str
    state_version: int
    timestamp_ms: int
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable event data."""
        return {
            "event_type": self.event_type.value,
            "room_id": self.room_id,
            "state_version": self.state_version,
            "timestamp_ms": self.timestamp_ms,
            "payload": to_serializable(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoomEvent":
        """Build an event from a dictionary payload."""
        return cls(
            event_type=EventType(str(data["event_type"])),
            room_id=str(data["room_id"]),
            state_version=int(data["state_version"]),
            timestamp_ms=int(data["timestamp_ms"]),
            payload=dict(data.get("payload", {})),
        )

    @classmethod
    def create(cls, event_type: EventType, room_id: str, state_version: int, payload: dict[str, Any]) -> "RoomEvent":
        """Construct an event with the current wall-clock timestamp."""
        return cls(
            event_type=event_type,
            room_id=room_id,
            state_version=state_version,
            timestamp_ms=int(time() * 1000),
            payload=payload,
        )


class EventLog:
    """Keeps the most recent events of each room."""

    def __init__(self, max_per_room: int = MAX_EVENTS_PER_ROOM):
        self._max_per_room = max_per_room
        self._lock = threading.Lock()
        self._events: dict[str, deque[RoomEvent]] = {}

    def record(self, event_type: EventType, room_id: str, state_version: int = 0, **payload: Any) -> RoomEvent:
        event = RoomEvent.create(event_type, room_id, state_version, payload)
        with self._lock:
            self._events.setdefault(room_id, deque(maxlen=self._max_per_room)).append(event)
        return event

    def events(self, room_id: str) -> list[RoomEvent]:
        with self._lock:
            return list(self._events.get(room_id, ()))

    def clear(self, room_id: str) -> None:
        with self._lock:
            self._events.pop(room_id, None)
