"""Authoritative game-state persistence with optimistic concurrency.

Every write bumps `state_version` by one and issues a new etag. A writer that
read an older etag is rejected with `StaleStateError` instead of being merged.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from .contract import EndCheck, GameModule
from .errors import IllegalMoveError, NotFoundError, StaleStateError
from .events import EventLog, EventType
from .gates import is_gate_action, validate_gate_action
from .move import Move
from .records import StateRecord
from .registry import GameRegistry
from .state import GameState
from .storage import Storage
from .turn import AwaitingGate, AwaitingResolution, Turn, seat_of

logger = logging.getLogger(__name__)

CompletionListener = Callable[[str], None]


@dataclass(frozen=True)
class StoredState:
    """A decoded game-state row."""

    room_id: str
    state_version: int
    current_turn: int | None
    game_data: GameState
    etag: str
    updated_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "state_version": self.state_version,
            "current_turn": self.current_turn,
            "turn": self.game_data.turn.to_dict(),
            "state": self.game_data.to_dict(),
            "etag": self.etag,
            "updated_at": self.updated_at,
        }


def make_etag(state: GameState, version: int) -> str:
    """Opaque token for one stored version: content digest, version and write time."""
    material = f"{state.state_digest()}:{version}:{time.time_ns()}".encode("utf-8")
    return hashlib.sha256(material).hexdigest()[:32]


class GameStateStore:
    """Create, read and update game states; orchestrates moves through the game module."""

    def __init__(
        self,
        storage: Storage,
        registry: GameRegistry,
        *,
        events: EventLog | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.registry = registry
        self.events = events
        self.clock = clock
        self._completion_listeners: list[CompletionListener] = []

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Call `listener(room_id)` whenever a write ends a game."""
        self._completion_listeners.append(listener)

    # Basic persistence

    def create(self, room_id: str, state: GameState) -> StoredState:
        record = self._record(room_id, state, version=1)
        self.storage.put_state(record)
        logger.info("Created state for room %s (turn=%s)", room_id, state.turn)
        return self._decoded(record)

    def get(self, room_id: str) -> StoredState | None:
        record = self.storage.get_state(room_id)
        if record is None:
            return None
        return self._decoded(record)

    def require(self, room_id: str) -> StoredState:
        stored = self.get(room_id)
        if stored is None:
            raise NotFoundError(code="no_state")
        return stored

    def update(self, room_id: str, state: GameState, expected_etag: str | None = None) -> StoredState:
        """Compare-and-swap write. `expected_etag=None` writes over whatever is current."""
        current = self.storage.get_state(room_id)
        if current is None:
            raise NotFoundError(code="no_state")
        if expected_etag is not None and expected_etag != current.etag:
            logger.debug("Stale write to room %s rejected (v%s)", room_id, current.state_version)
            raise StaleStateError(current.etag, current.state_version)

        record = self._record(room_id, state, version=current.state_version + 1)
        if not self.storage.swap_state(record, expected_version=current.state_version):
            latest = self.storage.get_state(room_id)
            if latest is None:
                raise NotFoundError(code="no_state")
            logger.debug("Concurrent write to room %s lost the race (v%s)", room_id, latest.state_version)
            raise StaleStateError(latest.etag, latest.state_version)
        return self._decoded(record)

    def delete(self, room_id: str) -> None:
        self.storage.delete_state(room_id)

    def get_if_changed(self, room_id: str, known_etag: str | None) -> StoredState | None:
        """Return the state only if its etag differs from `known_etag`."""
        stored = self.get(room_id)
        if stored is None or (known_etag and stored.etag == known_etag):
            return None
        return stored

    def get_public_state(self, room_id: str, viewer_seat: int | None) -> dict[str, Any] | None:
        stored = self.get(room_id)
        if stored is None:
            return None
        module = self.module_for(room_id)
        return {
            "room_id": room_id,
            "state_version": stored.state_version,
            "current_turn": stored.current_turn,
            "turn": stored.game_data.turn.to_dict(),
            "state": module.get_public_state(stored.game_data, viewer_seat),
            "etag": stored.etag,
        }

    def module_for(self, room_id: str) -> GameModule[Any, Any]:
        room = self.storage.get_room(room_id)
        if room is None:
            raise NotFoundError(code="room_not_found")
        return self.registry.get(room.game_id)

    # Gameplay

    def apply_move(
        self,
        room_id: str,
        seat: int,
        move: Move | Mapping[str, Any],
        expected_etag: str | None = None,
    ) -> StoredState:
        """Validate, apply, then either finish the game or advance the turn, as one write."""
        current = self.require(room_id)
        if expected_etag is not None and expected_etag != current.etag:
            raise StaleStateError(current.etag, current.state_version)

        module = self.module_for(room_id)
        parsed = self._parse(module, seat, move)
        state = current.game_data
        self._check_move(module, state, seat, parsed)

        state = module.apply_move(state, seat, parsed)
        state = replace(state, last_move_at=self.clock(), move_count=state.move_count + 1)
        end = module.check_end_condition(state)
        if end.ended:
            state = self._finished(state, end)
        else:
            state = module.advance_turn(state)

        stored = self.update(room_id, state, expected_etag=current.etag)
        info = current.game_data.seat_info(seat)
        event_type = EventType.AI_MOVE if info is not None and info.is_ai else EventType.MOVE
        self._record_event(event_type, stored, seat=seat, move=parsed.to_dict())
        self._after_write(current.game_data, stored)
        return stored

    def resolve_pending(self, room_id: str, expected_etag: str | None = None) -> StoredState:
        """Run the module's resolution step for a state held in `AwaitingResolution`."""
        current = self.require(room_id)
        if expected_etag is not None and expected_etag != current.etag:
            raise StaleStateError(current.etag, current.state_version)
        if not isinstance(current.game_data.turn, AwaitingResolution) or current.game_data.game_over:
            return current

        module = self.module_for(room_id)
        state = module.resolve_pending(current.game_data)
        end = module.check_end_condition(state)
        if end.ended:
            state = self._finished(state, end)

        stored = self.update(room_id, state, expected_etag=current.etag)
        self._record_event(EventType.RESOLVED, stored, turn=stored.game_data.turn.to_dict())
        self._after_write(current.game_data, stored)
        return stored

    def conclude_stuck(self, room_id: str, seat: int, expected_etag: str | None = None) -> StoredState:
        """End the game when a seat has no legal move instead of waiting forever."""
        current = self.require(room_id)
        if expected_etag is not None and expected_etag != current.etag:
            raise StaleStateError(current.etag, current.state_version)
        if current.game_data.game_over:
            return current

        module = self.module_for(room_id)
        end = module.check_end_condition(current.game_data)
        if not end.ended:
            end = EndCheck(ended=True, reason="no_moves", winners=module.forfeit_winners(current.game_data, seat))
        logger.warning("Seat %s in room %s has no legal move; ending game (%s)", seat, room_id, end.reason)
        stored = self.update(room_id, self._finished(current.game_data, end), expected_etag=current.etag)
        self._after_write(current.game_data, stored)
        return stored

    def forfeit(
        self,
        room_id: str,
        seat: int,
        reason: str = "forfeit",
        expected_etag: str | None = None,
    ) -> StoredState:
        """End the game with `seat` conceding; the module decides who wins."""
        current = self.require(room_id)
        if expected_etag is not None and expected_etag != current.etag:
            raise StaleStateError(current.etag, current.state_version)
        state = current.game_data
        if state.game_over:
            raise IllegalMoveError(seat, {"type": "Forfeit"}, "game_over")
        if state.seat_info(seat) is None:
            raise NotFoundError(code="not_in_room")

        module = self.module_for(room_id)
        end = EndCheck(ended=True, reason=reason, winners=module.forfeit_winners(state, seat))
        stored = self.update(room_id, self._finished(state, end), expected_etag=current.etag)
        logger.info("Seat %s in room %s forfeited (%s)", seat, room_id, reason)
        self._after_write(state, stored)
        return stored

    def expire_stalled_turn(self, room_id: str, timeout_seconds: float) -> StoredState | None:
        """Forfeit a human seat that has held the turn for longer than `timeout_seconds`."""
        stored = self.get(room_id)
        if stored is None or stored.game_data.game_over:
            return None
        state = stored.game_data
        seat = seat_of(state.turn)
        if seat is None:
            return None
        info = state.seat_info(seat)
        if info is None or info.is_ai:
            return None
        if self.clock() - state.last_move_at <= timeout_seconds:
            return None
        logger.warning("Seat %s in room %s timed out after %ss", seat, room_id, timeout_seconds)
        try:
            return self.forfeit(room_id, seat, reason="timeout", expected_etag=stored.etag)
        except StaleStateError:
            return None

    # Internals

    def _parse(self, module: GameModule[Any, Any], seat: int, move: Move | Mapping[str, Any]) -> Move:
        if isinstance(move, Move):
            return move
        try:
            return module.parse_move(move)
        except (ValueError, TypeError, KeyError) as exc:
            logger.debug("Unparseable move from seat %s: %s", seat, exc)
            raise IllegalMoveError(seat, dict(move), "invalid_move") from exc

    def _check_move(self, module: GameModule[Any, Any], state: GameState, seat: int, move: Move) -> None:
        reason = self._generic_rejection(module, state, seat, move)
        if reason is None:
            ok, reason = module.validate_move(state, seat, move)
            if ok:
                return
        logger.debug("Rejected %s from seat %s: %s", move.move_type, seat, reason)
        raise IllegalMoveError(seat, move, reason or "invalid_move")

    def _generic_rejection(self, module: GameModule[Any, Any], state: GameState, seat: int, move: Move) -> str | None:
        if state.game_over:
            return "game_over"
        if state.seat_info(seat) is None:
            return "not_in_room"
        if is_gate_action(move):
            return validate_gate_action(state, move)[1]
        if isinstance(state.turn, AwaitingGate):
            return "awaiting_gate"
        if module.is_simultaneous(state):
            if seat not in module.simultaneous_pending_seats(state):
                return "already_moved"
            return None
        if state.turn != Turn(seat):
            return "not_your_turn"
        return None

    def _finished(self, state: GameState, end: EndCheck) -> GameState:
        return replace(
            state,
            game_over=True,
            end_reason=end.reason,
            winners=tuple(end.winners or ()),
        )

    def _after_write(self, before: GameState, stored: StoredState) -> None:
        if stored.game_data.game_over and not before.game_over:
            self._record_event(
                EventType.GAME_OVER,
                stored,
                reason=stored.game_data.end_reason,
                winners=list(stored.game_data.winners or ()),
            )
            logger.info(
                "Room %s game over: %s, winners %s",
                stored.room_id,
                stored.game_data.end_reason,
                stored.game_data.winners,
            )
            for listener in self._completion_listeners:
                listener(stored.room_id)

    def _record_event(self, event_type: EventType, stored: StoredState, **payload: Any) -> None:
        if self.events is not None:
            self.events.record(event_type, stored.room_id, stored.state_version, **payload)

    def _record(self, room_id: str, state: GameState, version: int) -> StateRecord:
        return StateRecord(
            room_id=room_id,
            state_version=version,
            current_turn=seat_of(state.turn),
            game_data=state.to_dict(),
            etag=make_etag(state, version),
            updated_at=self.clock(),
        )

    def _decoded(self, record: StateRecord) -> StoredState:
        module = self.module_for(record.room_id)
        return StoredState(
            room_id=record.room_id,
            state_version=record.state_version,
            current_turn=record.current_turn,
            game_data=module.decode_state(record.game_data),
            etag=record.etag,
            updated_at=record.updated_at,
        )
