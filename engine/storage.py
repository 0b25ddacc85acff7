"""Storage backends for rooms, seats and game-state rows."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Iterable

from .errors import StorageError
from .records import Player, Room, RoomStatus, StateRecord


class Storage(ABC):
    """Persistence seam used by the room manager and the state store.

    Implementations must make `add_player` reject a taken seat and make
    `swap_state` a single conditional write.
    """

    @abstractmethod
    def add_room(self, room: Room) -> None: ...

    @abstractmethod
    def get_room(self, room_id: str) -> Room | None: ...

    @abstractmethod
    def find_room_by_code(self, room_code: str, statuses: Iterable[RoomStatus] | None = None) -> Room | None: ...

    @abstractmethod
    def save_room(self, room: Room) -> None: ...

    @abstractmethod
    def delete_room(self, room_id: str) -> None:
        """Delete a room together with its seats and state."""

    @abstractmethod
    def list_rooms(self) -> list[Room]: ...

    @abstractmethod
    def add_player(self, player: Player) -> None:
        """Insert a seat; raise `StorageError(code="seat_taken")` if the seat is occupied."""

    @abstractmethod
    def get_player(self, player_id: str) -> Player | None: ...

    @abstractmethod
    def save_player(self, player: Player) -> None: ...

    @abstractmethod
    def delete_player(self, player_id: str) -> None: ...

    @abstractmethod
    def list_players(self, room_id: str) -> list[Player]:
        """Seats of a room ordered by seat position."""

    @abstractmethod
    def find_players_by_client(self, client_id: str) -> list[Player]: ...

    @abstractmethod
    def put_state(self, record: StateRecord) -> None:
        """Insert or overwrite the state row of a room."""

    @abstractmethod
    def get_state(self, room_id: str) -> StateRecord | None: ...

    @abstractmethod
    def swap_state(self, record: StateRecord, expected_version: int) -> bool:
        """Write `record` only if the stored version is still `expected_version`."""

    @abstractmethod
    def delete_state(self, room_id: str) -> None: ...


class MemoryStorage(Storage):
    """Process-local storage. Game documents are copied in and out so callers never share them."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {}
        self._players: dict[str, Player] = {}
        self._states: dict[str, StateRecord] = {}

    def add_room(self, room: Room) -> None:
        with self._lock:
            if room.id in self._rooms:
                raise StorageError(f"Room already exists: {room.id}")
            self._rooms[room.id] = room

    def get_room(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def find_room_by_code(self, room_code: str, statuses: Iterable[RoomStatus] | None = None) -> Room | None:
        allowed = set(statuses) if statuses is not None else None
        with self._lock:
            matches = [
                room
                for room in self._rooms.values()
                if room.room_code == room_code and (allowed is None or room.status in allowed)
            ]
        if not matches:
            return None
        return max(matches, key=lambda room: room.created_at)

    def save_room(self, room: Room) -> None:
        with self._lock:
            if room.id not in self._rooms:
                raise StorageError(f"Unknown room: {room.id}")
            self._rooms[room.id] = room

    def delete_room(self, room_id: str) -> None:
        with self._lock:
            self._rooms.pop(room_id, None)
            self._states.pop(room_id, None)
            for player_id in [player.id for player in self._players.values() if player.room_id == room_id]:
                del self._players[player_id]

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return sorted(self._rooms.values(), key=lambda room: room.created_at)

    def add_player(self, player: Player) -> None:
        with self._lock:
            if player.room_id not in self._rooms:
                raise StorageError(f"Unknown room: {player.room_id}")
            for existing in self._players.values():
                if existing.room_id == player.room_id and existing.seat_position == player.seat_position:
                    raise StorageError(code="seat_taken")
            self._players[player.id] = player

    def get_player(self, player_id: str) -> Player | None:
        with self._lock:
            return self._players.get(player_id)

    def save_player(self, player: Player) -> None:
        with self._lock:
            if player.id not in self._players:
                raise StorageError(f"Unknown player: {player.id}")
            self._players[player.id] = player

    def delete_player(self, player_id: str) -> None:
        with self._lock:
            self._players.pop(player_id, None)

    def list_players(self, room_id: str) -> list[Player]:
        with self._lock:
            players = [player for player in self._players.values() if player.room_id == room_id]
        return sorted(players, key=lambda player: player.seat_position)

    def find_players_by_client(self, client_id: str) -> list[Player]:
        with self._lock:
            return [player for player in self._players.values() if player.client_id == client_id]

    def put_state(self, record: StateRecord) -> None:
        with self._lock:
            if record.room_id not in self._rooms:
                raise StorageError(f"Unknown room: {record.room_id}")
            self._states[record.room_id] = _copied(record)

    def get_state(self, room_id: str) -> StateRecord | None:
        with self._lock:
            record = self._states.get(room_id)
            return _copied(record) if record is not None else None

    def swap_state(self, record: StateRecord, expected_version: int) -> bool:
        with self._lock:
            current = self._states.get(record.room_id)
            if current is None or current.state_version != expected_version:
                return False
            self._states[record.room_id] = _copied(record)
            return True

    def delete_state(self, room_id: str) -> None:
        with self._lock:
            self._states.pop(room_id, None)


def _copied(record: StateRecord) -> StateRecord:
    return replace(record, game_data=copy.deepcopy(dict(record.game_data)))
