"""Persisted records: rooms, seats and raw game-state rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class RoomStatus(str, Enum):
    """Room lifecycle."""

    LOBBY = "lobby"
    ACTIVE = "active"
    COMPLETED = "completed"


OPEN_STATUSES = (RoomStatus.LOBBY, RoomStatus.ACTIVE)


@dataclass(frozen=True)
class Room:
    """A lobby or table for one game."""

    id: str
    room_code: str
    game_id: str
    status: RoomStatus
    settings: Mapping[str, Any]
    expires_at: float
    created_at: float
    updated_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "room_code": self.room_code,
            "game_id": self.game_id,
            "status": self.status.value,
            "settings": dict(self.settings),
            "expires_at": self.expires_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class Player:
    """One occupied seat in a room."""

    id: str
    room_id: str
    seat_position: int
    display_name: str
    user_id: int | None = None
    guest_token: str | None = None
    client_id: str | None = None
    is_ai: bool = False
    ai_difficulty: str | None = None
    connected: bool = True
    last_seen: float = 0.0
    joined_at: float = 0.0

    def to_public_dict(self) -> dict[str, Any]:
        """Seat as shown to other clients; the guest token is a credential and stays private."""
        return {
            "id": self.id,
            "seat_position": self.seat_position,
            "display_name": self.display_name,
            "user_id": self.user_id,
            "is_ai": self.is_ai,
            "ai_difficulty": self.ai_difficulty,
            "connected": self.connected,
            "last_seen": self.last_seen,
        }


@dataclass(frozen=True)
class PlayerIdentity:
    """Caller identity resolved by the transport layer."""

    user_id: int | None = None
    guest_token: str | None = None
    client_id: str | None = None
    display_name: str | None = None

    def is_anonymous(self) -> bool:
        return self.user_id is None and not self.guest_token

    def matches(self, player: Player) -> bool:
        if player.is_ai:
            return False
        if self.user_id is not None and player.user_id == self.user_id:
            return True
        return bool(self.guest_token) and player.guest_token == self.guest_token


@dataclass(frozen=True)
class StateRecord:
    """One stored game-state row, with `game_data` still as a JSON document."""

    room_id: str
    state_version: int
    current_turn: int | None
    game_data: Mapping[str, Any] = field(default_factory=dict)
    etag: str = ""
    updated_at: float = 0.0
