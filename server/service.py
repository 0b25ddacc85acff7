"""Transport-agnostic room and game operations behind the HTTP API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from engine.ai import AITurnProcessor, thinking_delay_ms
from engine.config import EngineConfig
from engine.errors import RoomStateError
from engine.events import EventLog
from engine.records import Player, PlayerIdentity, Room, RoomStatus
from engine.registry import GameRegistry, default_registry
from engine.rooms import RoomManager
from engine.sqlite_storage import SqliteStorage
from engine.storage import MemoryStorage, Storage
from engine.store import GameStateStore

logger = logging.getLogger(__name__)


@dataclass
class ArcadeService:
    """Wires storage, registry, store, rooms and AI together for one process."""

    config: EngineConfig
    storage: Storage
    registry: GameRegistry
    events: EventLog
    store: GameStateStore
    rooms: RoomManager
    ai: AITurnProcessor

    # Catalogue and lobby

    def list_games(self) -> list[dict[str, Any]]:
        return self.registry.list_metadata()

    def create_room(
        self,
        game_id: str,
        settings: Mapping[str, Any],
        identity: PlayerIdentity,
    ) -> dict[str, Any]:
        room = self.rooms.create_room(game_id, settings)
        player = None if identity.is_anonymous() else self.rooms.join_room(room.room_code, identity)
        return self._room_payload(room.room_code, player)

    def room(self, room_code: str) -> dict[str, Any]:
        room = self.rooms.require_room(room_code)
        return self.rooms.room_view(room)

    def join(self, room_code: str, identity: PlayerIdentity) -> dict[str, Any]:
        player = self.rooms.join_room(room_code, identity)
        return self._room_payload(room_code, player)

    def add_ai(self, room_code: str, difficulty: str) -> dict[str, Any]:
        room = self.rooms.require_room(room_code)
        player = self.rooms.add_ai_player(room.id, difficulty)
        return self._room_payload(room_code, player)

    def leave(self, room_code: str, identity: PlayerIdentity) -> dict[str, Any]:
        self.rooms.leave_room(room_code, identity)
        return {"left": True, "room_code": room_code.upper()}

    def start(self, room_code: str, identity: PlayerIdentity) -> dict[str, Any]:
        room = self.rooms.require_room(room_code)
        if not identity.is_anonymous() and self.rooms.find_player(room, identity) is None:
            raise RoomStateError(code="not_in_room")
        stored = self.rooms.start_game(room_code)
        # AI seats may hold the opening turn.
        self.ai.process_ai_turns(room.id)
        seat = None if identity.is_anonymous() else self.rooms.player_seat(room, identity)
        payload = self._game_payload(room.id, seat)
        payload["started_version"] = stored.state_version
        return payload

    # Gameplay

    def poll(self, room_code: str, identity: PlayerIdentity, etag: str | None = None) -> dict[str, Any]:
        """Heartbeat, move timeout and one AI step, then the state if it changed since `etag`."""
        room = self.rooms.require_room(room_code)
        player = self.rooms.find_player(room, identity)
        if player is not None:
            self.rooms.touch_player(player.id)
        if room.status is RoomStatus.ACTIVE:
            self.store.expire_stalled_turn(room.id, self.config.move_timeout_seconds)
            self.ai.process_ai_turns(room.id)

        stored = self.store.get(room.id)
        if stored is not None and etag and stored.etag == etag:
            return {"changed": False, "etag": stored.etag}
        seat = player.seat_position if player is not None else None
        return {"changed": True, **self._game_payload(room.id, seat)}

    def move(
        self,
        room_code: str,
        identity: PlayerIdentity,
        move: Mapping[str, Any],
        etag: str | None = None,
    ) -> dict[str, Any]:
        room, player = self._seated(room_code, identity)
        self.store.apply_move(room.id, player.seat_position, move, expected_etag=etag)
        self.rooms.touch_room(room.id)
        self.rooms.touch_player(player.id)
        self.ai.process_ai_turns(room.id)
        return self._game_payload(room.id, player.seat_position)

    def forfeit(self, room_code: str, identity: PlayerIdentity, etag: str | None = None) -> dict[str, Any]:
        room, player = self._seated(room_code, identity)
        self.store.forfeit(room.id, player.seat_position, expected_etag=etag)
        return self._game_payload(room.id, player.seat_position)

    def rejoin(self, client_id: str, game_id: str) -> dict[str, Any]:
        """Find the newest open room of `game_id` where this browser still holds a seat."""
        found = self.rooms.find_player_by_client_id(client_id, game_id)
        if found is None:
            return {"found": False}
        room, player = found
        player = self.rooms.rejoin_room(room.room_code, player.id, client_id)
        return {
            "found": True,
            "room_code": room.room_code,
            "status": room.status.value,
            "seat": player.seat_position,
            "player": player.to_public_dict(),
        }

    def room_events(self, room_code: str) -> list[dict[str, Any]]:
        room = self.rooms.require_room(room_code)
        return [event.to_dict() for event in self.events.events(room.id)]

    def cleanup(self) -> dict[str, int]:
        reaped = self.rooms.cleanup_disconnected_players()
        expired = self.rooms.cleanup_expired_rooms()
        return {"reaped_players": reaped, "expired_rooms": expired}

    # Internals

    def _seated(self, room_code: str, identity: PlayerIdentity) -> tuple[Room, Player]:
        room = self.rooms.require_room(room_code)
        if room.status is not RoomStatus.ACTIVE:
            raise RoomStateError(code="not_active")
        player = self.rooms.find_player(room, identity)
        if player is None:
            raise RoomStateError(code="not_in_room")
        return room, player

    def _room_payload(self, room_code: str, player: Player | None) -> dict[str, Any]:
        payload: dict[str, Any] = {"room": self.room(room_code)}
        if player is not None:
            payload["player"] = player.to_public_dict()
        return payload

    def _game_payload(self, room_id: str, viewer_seat: int | None) -> dict[str, Any]:
        room = self.rooms.get_room_by_id(room_id)
        public = self.store.get_public_state(room_id, viewer_seat)
        ai_pending = self.ai.is_ai_turn(room_id) if public is not None else False
        payload: dict[str, Any] = {
            "room": self.rooms.room_view(room) if room is not None else None,
            "state": public,
            "etag": public["etag"] if public is not None else None,
            "ai_pending": ai_pending,
        }
        if ai_pending:
            payload["ai_delay_ms"] = self._ai_delay(room_id)
        return payload

    def _ai_delay(self, room_id: str) -> int:
        stored = self.store.get(room_id)
        if stored is None:
            return 0
        module = self.store.module_for(room_id)
        seats = self.ai.pending_ai_seats(module, stored.game_data) or [stored.game_data.current_seat]
        info = stored.game_data.seat_info(seats[0]) if seats[0] is not None else None
        return thinking_delay_ms(info.ai_difficulty if info is not None else None)


def build_storage(config: EngineConfig) -> Storage:
    if config.db_path:
        logger.info("Using SQLite storage at %s", config.db_path)
        return SqliteStorage(config.db_path)
    return MemoryStorage()


def build_service(config: EngineConfig | None = None, *, registry: GameRegistry | None = None) -> ArcadeService:
    config = config or EngineConfig()
    storage = build_storage(config)
    registry = registry or default_registry()
    events = EventLog()
    store = GameStateStore(storage, registry, events=events)
    rooms = RoomManager(storage, registry, store, config=config, events=events)
    ai = AITurnProcessor(store)
    return ArcadeService(
        config=config,
        storage=storage,
        registry=registry,
        events=events,
        store=store,
        rooms=rooms,
        ai=ai,
    )
