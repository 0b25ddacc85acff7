"""Drives AI seats one unit of work at a time."""

from __future__ import annotations

import logging
from typing import Any

from .contract import Difficulty, GameModule
from .errors import IllegalMoveError, StaleStateError
from .move import Move
from .state import GameState
from .store import GameStateStore, StoredState
from .turn import AwaitingGate, AwaitingResolution, seat_of

logger = logging.getLogger(__name__)

THINKING_DELAY_MS: dict[Difficulty, int] = {
    Difficulty.BEGINNER: 400,
    Difficulty.INTERMEDIATE: 600,
    Difficulty.EXPERT: 800,
}


def thinking_delay_ms(difficulty: str | Difficulty | None) -> int:
    """Suggested client-side pause before showing an AI move."""
    level = difficulty if isinstance(difficulty, Difficulty) else Difficulty.parse(difficulty)
    return THINKING_DELAY_MS[level]


def _difficulty(state: GameState, seat: int) -> Difficulty:
    info = state.seat_info(seat)
    return Difficulty.parse(info.ai_difficulty if info is not None else None)


def _is_ai_seat(state: GameState, seat: int | None) -> bool:
    if seat is None:
        return False
    info = state.seat_info(seat)
    return info is not None and info.is_ai


class AITurnProcessor:
    """Applies AI moves through the state store. Human seats are never moved."""

    def __init__(self, store: GameStateStore):
        self.store = store

    def pending_ai_seats(self, module: GameModule[Any, Any], state: GameState) -> list[int]:
        """AI seats that still owe a move in a simultaneous phase."""
        pending = module.simultaneous_pending_seats(state)
        return sorted(seat for seat in pending if _is_ai_seat(state, seat))

    def needs_ai(self, module: GameModule[Any, Any], state: GameState) -> bool:
        if state.game_over or isinstance(state.turn, AwaitingGate):
            return False
        if isinstance(state.turn, AwaitingResolution):
            return True
        if module.is_simultaneous(state):
            return bool(self.pending_ai_seats(module, state))
        return _is_ai_seat(state, seat_of(state.turn))

    def is_ai_turn(self, room_id: str) -> bool:
        stored = self.store.get(room_id)
        if stored is None:
            return False
        return self.needs_ai(self.store.module_for(room_id), stored.game_data)

    def process_ai_turns(self, room_id: str) -> StoredState | None:
        """Advance the room by one AI step and return the resulting state."""
        stored = self.store.get(room_id)
        if stored is None:
            return None
        module = self.store.module_for(room_id)
        try:
            return self._step(module, stored)
        except StaleStateError:
            logger.debug("AI step in room %s lost a race; returning fresh state", room_id)
            return self.store.get(room_id)

    def _step(self, module: GameModule[Any, Any], stored: StoredState) -> StoredState:
        state = stored.game_data
        if state.game_over or isinstance(state.turn, AwaitingGate):
            return stored

        if isinstance(state.turn, AwaitingResolution):
            stored = self.store.resolve_pending(stored.room_id, expected_etag=stored.etag)
            logger.info("Resolved pending play in room %s (v%s)", stored.room_id, stored.state_version)
            state = stored.game_data
            if isinstance(state.turn, AwaitingResolution) or not self.needs_ai(module, state):
                return stored

        if module.is_simultaneous(state):
            for seat in self.pending_ai_seats(module, state):
                stored = self._play(module, stored, seat)
                if stored.game_data.game_over or not module.is_simultaneous(stored.game_data):
                    break
            return stored

        seat = seat_of(state.turn)
        if not _is_ai_seat(state, seat):
            return stored
        return self._play(module, stored, seat)  # type: ignore[arg-type]

    def _play(self, module: GameModule[Any, Any], stored: StoredState, seat: int) -> StoredState:
        state = stored.game_data
        difficulty = _difficulty(state, seat)
        move = module.ai_move(state, seat, difficulty)
        if move is None:
            return self.store.conclude_stuck(stored.room_id, seat, expected_etag=stored.etag)
        try:
            result = self.store.apply_move(stored.room_id, seat, move, expected_etag=stored.etag)
        except IllegalMoveError as exc:
            logger.warning("AI seat %s in room %s chose an illegal move (%s)", seat, stored.room_id, exc.reason)
            fallback = self._fallback(module, state, seat)
            if fallback is None:
                return self.store.conclude_stuck(stored.room_id, seat, expected_etag=stored.etag)
            result = self.store.apply_move(stored.room_id, seat, fallback, expected_etag=stored.etag)
            move = fallback
        logger.info(
            "AI seat %s (%s) in room %s played %s",
            seat,
            difficulty.value,
            stored.room_id,
            move.move_type,
        )
        return result

    def _fallback(self, module: GameModule[Any, Any], state: GameState, seat: int) -> Move | None:
        valid = module.get_valid_moves(state, seat)
        return valid[0] if valid else None
