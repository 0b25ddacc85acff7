"""SQLite storage backend.

One row per room, one row per seat and one row per game state. The state
write used for optimistic concurrency is a single conditional UPDATE.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Iterable

from .errors import StorageError
from .records import Player, Room, RoomStatus, StateRecord
from .serialize import json_dumps, json_loads
from .storage import Storage

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    room_code TEXT NOT NULL,
    game_id TEXT NOT NULL,
    status TEXT NOT NULL,
    settings TEXT NOT NULL,
    expires_at REAL NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_rooms_code ON rooms (room_code, status);

CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL REFERENCES rooms (id) ON DELETE CASCADE,
    seat_position INTEGER NOT NULL,
    display_name TEXT NOT NULL,
    user_id INTEGER,
    guest_token TEXT,
    client_id TEXT,
    is_ai INTEGER NOT NULL DEFAULT 0,
    ai_difficulty TEXT,
    connected INTEGER NOT NULL DEFAULT 1,
    last_seen REAL NOT NULL,
    joined_at REAL NOT NULL,
    UNIQUE (room_id, seat_position)
);
CREATE INDEX IF NOT EXISTS idx_players_client ON players (client_id);

CREATE TABLE IF NOT EXISTS game_states (
    room_id TEXT PRIMARY KEY REFERENCES rooms (id) ON DELETE CASCADE,
    state_version INTEGER NOT NULL,
    current_turn INTEGER,
    game_data TEXT NOT NULL,
    etag TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection with dict-like rows and foreign keys enforced."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_database(db_path: str) -> None:
    """Create the tables if they do not exist yet."""
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
        logger.info("Database initialized at %s", db_path)
    finally:
        conn.close()


class SqliteStorage(Storage):
    """`Storage` backed by a SQLite file. Each call opens its own connection."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_database(db_path)

    def _execute(self, query: str, params: tuple = ()) -> int:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise StorageError(f"SQLite error: {exc}") from exc
        finally:
            conn.close()

    def _fetch(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        conn = get_connection(self.db_path)
        try:
            return [dict(row) for row in conn.execute(query, params).fetchall()]
        except sqlite3.Error as exc:
            raise StorageError(f"SQLite error: {exc}") from exc
        finally:
            conn.close()

    def _fetch_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        rows = self._fetch(query, params)
        return rows[0] if rows else None

    # Rooms

    def add_room(self, room: Room) -> None:
        try:
            self._execute(
                "INSERT INTO rooms (id, room_code, game_id, status, settings, expires_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    room.id,
                    room.room_code,
                    room.game_id,
                    room.status.value,
                    json_dumps(room.settings),
                    room.expires_at,
                    room.created_at,
                    room.updated_at,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"Room already exists: {room.id}") from exc

    def get_room(self, room_id: str) -> Room | None:
        row = self._fetch_one("SELECT * FROM rooms WHERE id = ?", (room_id,))
        return _room_from_row(row) if row else None

    def find_room_by_code(self, room_code: str, statuses: Iterable[RoomStatus] | None = None) -> Room | None:
        query = "SELECT * FROM rooms WHERE room_code = ?"
        params: list[Any] = [room_code]
        if statuses is not None:
            values = [status.value for status in statuses]
            query += f" AND status IN ({', '.join('?' for _ in values)})"
            params.extend(values)
        row = self._fetch_one(query + " ORDER BY created_at DESC LIMIT 1", tuple(params))
        return _room_from_row(row) if row else None

    def save_room(self, room: Room) -> None:
        updated = self._execute(
            "UPDATE rooms SET room_code = ?, game_id = ?, status = ?, settings = ?, expires_at = ?, "
            "created_at = ?, updated_at = ? WHERE id = ?",
            (
                room.room_code,
                room.game_id,
                room.status.value,
                json_dumps(room.settings),
                room.expires_at,
                room.created_at,
                room.updated_at,
                room.id,
            ),
        )
        if updated != 1:
            raise StorageError(f"Unknown room: {room.id}")

    def delete_room(self, room_id: str) -> None:
        self._execute("DELETE FROM rooms WHERE id = ?", (room_id,))

    def list_rooms(self) -> list[Room]:
        return [_room_from_row(row) for row in self._fetch("SELECT * FROM rooms ORDER BY created_at")]

    # Players

    def add_player(self, player: Player) -> None:
        try:
            self._execute(
                "INSERT INTO players (id, room_id, seat_position, display_name, user_id, guest_token, client_id, "
                "is_ai, ai_difficulty, connected, last_seen, joined_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                _player_params(player),
            )
        except sqlite3.IntegrityError as exc:
            if "seat_position" in str(exc) or "UNIQUE" in str(exc):
                raise StorageError(code="seat_taken") from exc
            raise StorageError(f"Could not add player: {exc}") from exc

    def get_player(self, player_id: str) -> Player | None:
        row = self._fetch_one("SELECT * FROM players WHERE id = ?", (player_id,))
        return _player_from_row(row) if row else None

    def save_player(self, player: Player) -> None:
        params = _player_params(player)
        try:
            updated = self._execute(
                "UPDATE players SET room_id = ?, seat_position = ?, display_name = ?, user_id = ?, guest_token = ?, "
                "client_id = ?, is_ai = ?, ai_difficulty = ?, connected = ?, last_seen = ?, joined_at = ? WHERE id = ?",
                params[1:] + params[:1],
            )
        except sqlite3.IntegrityError as exc:
            raise StorageError(code="seat_taken") from exc
        if updated != 1:
            raise StorageError(f"Unknown player: {player.id}")

    def delete_player(self, player_id: str) -> None:
        self._execute("DELETE FROM players WHERE id = ?", (player_id,))

    def list_players(self, room_id: str) -> list[Player]:
        rows = self._fetch("SELECT * FROM players WHERE room_id = ? ORDER BY seat_position", (room_id,))
        return [_player_from_row(row) for row in rows]

    def find_players_by_client(self, client_id: str) -> list[Player]:
        rows = self._fetch("SELECT * FROM players WHERE client_id = ?", (client_id,))
        return [_player_from_row(row) for row in rows]

    # Game states

    def put_state(self, record: StateRecord) -> None:
        try:
            self._execute(
                "INSERT OR REPLACE INTO game_states (room_id, state_version, current_turn, game_data, etag, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                _state_params(record),
            )
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"Unknown room: {record.room_id}") from exc

    def get_state(self, room_id: str) -> StateRecord | None:
        row = self._fetch_one("SELECT * FROM game_states WHERE room_id = ?", (room_id,))
        if row is None:
            return None
        return StateRecord(
            room_id=row["room_id"],
            state_version=int(row["state_version"]),
            current_turn=row["current_turn"],
            game_data=json_loads(row["game_data"]),
            etag=row["etag"],
            updated_at=float(row["updated_at"]),
        )

    def swap_state(self, record: StateRecord, expected_version: int) -> bool:
        room_id, version, current_turn, game_data, etag, updated_at = _state_params(record)
        updated = self._execute(
            "UPDATE game_states SET state_version = ?, current_turn = ?, game_data = ?, etag = ?, updated_at = ? "
            "WHERE room_id = ? AND state_version = ?",
            (version, current_turn, game_data, etag, updated_at, room_id, expected_version),
        )
        return updated == 1

    def delete_state(self, room_id: str) -> None:
        self._execute("DELETE FROM game_states WHERE room_id = ?", (room_id,))


def _room_from_row(row: dict[str, Any]) -> Room:
    return Room(
        id=row["id"],
        room_code=row["room_code"],
        game_id=row["game_id"],
        status=RoomStatus(row["status"]),
        settings=json_loads(row["settings"]),
        expires_at=float(row["expires_at"]),
        created_at=float(row["created_at"]),
        updated_at=float(row["updated_at"]),
    )


def _player_params(player: Player) -> tuple:
    return (
        player.id,
        player.room_id,
        player.seat_position,
        player.display_name,
        player.user_id,
        player.guest_token,
        player.client_id,
        int(player.is_ai),
        player.ai_difficulty,
        int(player.connected),
        player.last_seen,
        player.joined_at,
    )


def _player_from_row(row: dict[str, Any]) -> Player:
    return Player(
        id=row["id"],
        room_id=row["room_id"],
        seat_position=int(row["seat_position"]),
        display_name=row["display_name"],
        user_id=row["user_id"],
        guest_token=row["guest_token"],
        client_id=row["client_id"],
        is_ai=bool(row["is_ai"]),
        ai_difficulty=row["ai_difficulty"],
        connected=bool(row["connected"]),
        last_seen=float(row["last_seen"]),
        joined_at=float(row["joined_at"]),
    )


def _state_params(record: StateRecord) -> tuple:
    return (
        record.room_id,
        record.state_version,
        record.current_turn,
        json_dumps(record.game_data),
        record.etag,
        record.updated_at,
    )
