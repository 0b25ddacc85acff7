"""Room and seat lifecycle: create, join, leave, add AI, start, expire."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import replace
from typing import Any, Callable, Mapping
from uuid import uuid4

from .config import EngineConfig
from .contract import Difficulty
from .errors import GameNotFoundError, NotFoundError, RoomStateError, StorageError
from .events import EventLog, EventType
from .records import OPEN_STATUSES, Player, PlayerIdentity, Room, RoomStatus
from .registry import GameRegistry
from .rng import derive_seed
from .state import SeatInfo
from .storage import Storage
from .store import GameStateStore, StoredState

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 50
BOT_NAMES = ("Bot Alpha", "Bot Beta", "Bot Gamma", "Bot Delta")


def bot_name(index: int) -> str:
    """Name for the `index`-th AI seat in a room (0-based)."""
    if index < len(BOT_NAMES):
        return BOT_NAMES[index]
    return f"Bot {index + 1}"


def _lowest_free_seat(players: list[Player]) -> int:
    taken = {player.seat_position for player in players}
    seat = 0
    while seat in taken:
        seat += 1
    return seat


class RoomManager:
    """Creates rooms, seats players and drives the lobby to active to completed lifecycle."""

    def __init__(
        self,
        storage: Storage,
        registry: GameRegistry,
        store: GameStateStore,
        *,
        config: EngineConfig | None = None,
        events: EventLog | None = None,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] | None = None,
    ):
        self.storage = storage
        self.registry = registry
        self.store = store
        self.config = config or EngineConfig()
        self.events = events
        self.clock = clock
        self._code_factory = code_factory or self._random_code
        store.add_completion_listener(self._on_game_completed)

    # Lookups

    def get_room(self, room_code: str) -> Room | None:
        """Most recent room with this code (codes are only unique among open rooms)."""
        return self.storage.find_room_by_code(room_code.strip().upper())

    def get_room_by_id(self, room_id: str) -> Room | None:
        return self.storage.get_room(room_id)

    def require_room(self, room_code: str) -> Room:
        room = self.get_room(room_code)
        if room is None:
            raise NotFoundError(code="not_found")
        return room

    def players(self, room_id: str) -> list[Player]:
        return self.storage.list_players(room_id)

    def find_player(self, room: Room, identity: PlayerIdentity) -> Player | None:
        for player in self.players(room.id):
            if identity.matches(player):
                return player
        return None

    def player_seat(self, room: Room, identity: PlayerIdentity) -> int | None:
        player = self.find_player(room, identity)
        return player.seat_position if player is not None else None

    def room_view(self, room: Room) -> dict[str, Any]:
        payload = room.to_dict()
        payload["players"] = [player.to_public_dict() for player in self.players(room.id)]
        return payload

    # Lifecycle

    def create_room(self, game_id: str, settings: Mapping[str, Any] | None = None) -> Room:
        if not self.registry.exists(game_id):
            raise GameNotFoundError(game_id, code="invalid_game")
        now = self.clock()
        room = Room(
            id=uuid4().hex,
            room_code=self._unique_code(),
            game_id=game_id,
            status=RoomStatus.LOBBY,
            settings=dict(settings or {}),
            expires_at=now + self.config.inactivity_timeout_seconds,
            created_at=now,
            updated_at=now,
        )
        self.storage.add_room(room)
        self._event(EventType.ROOM_CREATED, room.id, game_id=game_id, room_code=room.room_code)
        logger.info("Created %s room %s", game_id, room.room_code)
        return room

    def join_room(self, room_code: str, identity: PlayerIdentity) -> Player:
        """Seat a human, or refresh the existing seat of a returning identity."""
        if identity.is_anonymous():
            raise RoomStateError(code="missing_identity")
        room = self.require_room(room_code)

        existing = self.find_player(room, identity)
        if existing is not None:
            refreshed = replace(
                existing,
                connected=True,
                last_seen=self.clock(),
                client_id=identity.client_id or existing.client_id,
            )
            self.storage.save_player(refreshed)
            self.touch_room(room.id)
            return refreshed

        if room.status is not RoomStatus.LOBBY:
            raise RoomStateError(code="game_started")
        metadata = self.registry.metadata(room.game_id)
        display_name = (identity.display_name or "").strip() or "Guest"

        def build(seat: int) -> Player:
            now = self.clock()
            return Player(
                id=uuid4().hex,
                room_id=room.id,
                seat_position=seat,
                display_name=display_name,
                user_id=identity.user_id,
                guest_token=identity.guest_token,
                client_id=identity.client_id,
                is_ai=False,
                connected=True,
                last_seen=now,
                joined_at=now,
            )

        player = self._insert_seat(room, metadata.max_players, build)
        self.touch_room(room.id)
        self._event(EventType.PLAYER_JOINED, room.id, seat=player.seat_position, display_name=display_name)
        logger.info("%s joined room %s at seat %s", display_name, room.room_code, player.seat_position)
        return player

    def add_ai_player(self, room_id: str, difficulty: str | Difficulty = Difficulty.BEGINNER) -> Player:
        room = self.storage.get_room(room_id)
        if room is None:
            raise NotFoundError(code="not_found")
        if room.status is not RoomStatus.LOBBY:
            raise RoomStateError(code="game_started")
        metadata = self.registry.metadata(room.game_id)
        players = self.players(room.id)
        if len(players) >= metadata.max_players:
            raise RoomStateError(code="room_full")
        if not metadata.ai_supported:
            raise RoomStateError(code="no_ai")

        level = difficulty if isinstance(difficulty, Difficulty) else Difficulty.parse(difficulty)
        ai_count = sum(1 for player in players if player.is_ai)

        def build(seat: int) -> Player:
            now = self.clock()
            return Player(
                id=uuid4().hex,
                room_id=room.id,
                seat_position=seat,
                display_name=bot_name(ai_count),
                is_ai=True,
                ai_difficulty=level.value,
                connected=True,
                last_seen=now,
                joined_at=now,
            )

        player = self._insert_seat(room, metadata.max_players, build)
        self.touch_room(room.id)
        self._event(EventType.AI_ADDED, room.id, seat=player.seat_position, difficulty=level.value)
        logger.info("Added %s (%s) to room %s", player.display_name, level.value, room.room_code)
        return player

    def leave_room(self, room_code: str, identity: PlayerIdentity) -> None:
        room = self.require_room(room_code)
        player = self.find_player(room, identity)
        if player is None:
            raise RoomStateError(code="not_in_room")
        self.storage.delete_player(player.id)
        self._event(EventType.PLAYER_LEFT, room.id, seat=player.seat_position)
        logger.info("Seat %s left room %s", player.seat_position, room.room_code)
        self._delete_if_empty(room)

    def start_game(self, room_code: str, seed: int | None = None) -> StoredState:
        """Move a lobby to active: build the initial state and persist it.

        The seed is drawn server-side and never taken from room settings, which
        every seat can read. `seed` is for reproducible tests only.
        """
        room = self.require_room(room_code)
        if room.status is not RoomStatus.LOBBY:
            raise RoomStateError(code="already_started")
        module = self.registry.find(room.game_id)
        if module is None:
            raise GameNotFoundError(room.game_id)
        metadata = module.register()
        if len(self.players(room.id)) < metadata.min_players:
            raise RoomStateError(code="not_enough_players")
        players = self._compact_seats(room)

        settings = {key: value for key, value in room.settings.items() if key != "seed"}
        if seed is None:
            seed = derive_seed(secrets.randbits(64), room.id)
        seats = [
            SeatInfo(
                seat=player.seat_position,
                display_name=player.display_name,
                is_ai=player.is_ai,
                ai_difficulty=player.ai_difficulty,
            )
            for player in players
        ]
        state = module.init_state(seats, settings)
        state = replace(state, seed=seed, last_move_at=self.clock())
        state = module.deal_or_setup(state)

        stored = self.store.create(room.id, state)
        try:
            self.update_status(room.id, RoomStatus.ACTIVE)
        except StorageError:
            self.store.delete(room.id)
            raise
        self._event(EventType.GAME_STARTED, room.id, stored.state_version, players=len(players))
        logger.info("Started %s in room %s with %d players", room.game_id, room.room_code, len(players))
        return stored

    def update_status(self, room_id: str, status: RoomStatus) -> Room:
        room = self.storage.get_room(room_id)
        if room is None:
            raise NotFoundError(code="room_not_found")
        now = self.clock()
        expires_at = room.expires_at
        if status is RoomStatus.COMPLETED:
            expires_at = now + self.config.completed_grace_seconds
        elif status is RoomStatus.ACTIVE:
            expires_at = now + self.config.inactivity_timeout_seconds
        updated = replace(room, status=status, expires_at=expires_at, updated_at=now)
        self.storage.save_room(updated)
        return updated

    def touch_room(self, room_id: str) -> None:
        """Push back the inactivity expiry. Completed rooms keep their short grace period."""
        room = self.storage.get_room(room_id)
        if room is None or room.status is RoomStatus.COMPLETED:
            return
        now = self.clock()
        self.storage.save_room(replace(room, expires_at=now + self.config.inactivity_timeout_seconds, updated_at=now))

    # Connection tracking

    def touch_player(self, player_id: str) -> None:
        player = self.storage.get_player(player_id)
        if player is not None:
            self.storage.save_player(replace(player, connected=True, last_seen=self.clock()))

    def mark_player_disconnected(self, player_id: str) -> None:
        player = self.storage.get_player(player_id)
        if player is not None and not player.is_ai:
            self.storage.save_player(replace(player, connected=False))

    def find_player_by_client_id(self, client_id: str, game_id: str) -> tuple[Room, Player] | None:
        """Most recent open room of `game_id` where this client holds a seat."""
        candidates: list[tuple[Room, Player]] = []
        for player in self.storage.find_players_by_client(client_id):
            room = self.storage.get_room(player.room_id)
            if room is not None and room.game_id == game_id and room.status in OPEN_STATUSES:
                candidates.append((room, player))
        if not candidates:
            return None
        return max(candidates, key=lambda pair: pair[0].created_at)

    def rejoin_room(self, room_code: str, player_id: str, client_id: str) -> Player:
        room = self.require_room(room_code)
        player = self.storage.get_player(player_id)
        if player is None or player.room_id != room.id:
            raise RoomStateError(code="not_in_room")
        refreshed = replace(player, connected=True, last_seen=self.clock(), client_id=client_id)
        self.storage.save_player(refreshed)
        self.touch_room(room.id)
        return refreshed

    def cleanup_disconnected_players(self) -> int:
        """Free lobby seats whose humans disconnected or stayed away past the grace window."""
        now = self.clock()
        cutoff = now - self.config.disconnect_grace_seconds
        removed = 0
        for room in self.storage.list_rooms():
            if room.status is not RoomStatus.LOBBY:
                continue
            for player in self.players(room.id):
                if player.is_ai or (player.connected and player.last_seen >= cutoff):
                    continue
                self.storage.delete_player(player.id)
                removed += 1
                logger.info("Reaped seat %s in room %s", player.seat_position, room.room_code)
            self._delete_if_empty(room)
        return removed

    def cleanup_expired_rooms(self) -> int:
        """Delete completed rooms past grace and open rooms past the hard cap or inactivity expiry."""
        now = self.clock()
        deleted = 0
        for room in self.storage.list_rooms():
            if room.status is RoomStatus.COMPLETED:
                expired = now > room.expires_at
            else:
                expired = now - room.created_at > self.config.hard_cap_seconds or now > room.expires_at
            if expired:
                self._delete_room(room)
                deleted += 1
        if deleted:
            logger.info("Expired %d room(s)", deleted)
        return deleted

    # Internals

    def _on_game_completed(self, room_id: str) -> None:
        if self.storage.get_room(room_id) is not None:
            self.update_status(room_id, RoomStatus.COMPLETED)

    def _insert_seat(self, room: Room, max_players: int, build: Callable[[int], Player]) -> Player:
        for _ in range(max_players):
            players = self.players(room.id)
            if len(players) >= max_players:
                raise RoomStateError(code="room_full")
            player = build(_lowest_free_seat(players))
            try:
                self.storage.add_player(player)
                return player
            except StorageError as exc:
                if exc.code != "seat_taken":
                    raise
                logger.debug("Seat %s in room %s taken concurrently; retrying", player.seat_position, room.room_code)
        raise RoomStateError(code="room_full")

    def _compact_seats(self, room: Room) -> list[Player]:
        """Renumber lobby seats to 0..n-1 so every game sees contiguous seats."""
        players = self.players(room.id)
        compacted = []
        for index, player in enumerate(players):
            if player.seat_position != index:
                player = replace(player, seat_position=index)
                self.storage.save_player(player)
            compacted.append(player)
        return compacted

    def _delete_if_empty(self, room: Room) -> None:
        if self.players(room.id):
            self.touch_room(room.id)
            return
        self._delete_room(room)

    def _delete_room(self, room: Room) -> None:
        self.storage.delete_room(room.id)
        if self.events is not None:
            self.events.clear(room.id)
        logger.info("Deleted room %s", room.room_code)

    def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self._code_factory()
            if self.storage.find_room_by_code(code, OPEN_STATUSES) is None:
                return code
        raise RoomStateError("Could not allocate a room code.", code="room_code_exhausted")

    @staticmethod
    def _random_code() -> str:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

    def _event(self, event_type: EventType, room_id: str, state_version: int = 0, **payload: Any) -> None:
        if self.events is not None:
            self.events.record(event_type, room_id, state_version, **payload)
