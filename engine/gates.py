"""Helpers for gate states: pauses a human must acknowledge before play continues."""

from __future__ import annotations

from typing import Any, TypeVar

from .move import BeginGame, Continue, Move
from .state import GameState
from .turn import AwaitingGate, TurnState

StateT = TypeVar("StateT", bound=GameState)

START_GAME = "start_game"


def open_gate(state: StateT, gate: str, **data: Any) -> StateT:
    """Pause the game until someone acknowledges `gate`."""
    return state.with_turn(AwaitingGate(gate=gate, data=data))


def close_gate(state: StateT, turn: TurnState) -> StateT:
    """Close the open gate and hand play to `turn`."""
    return state.with_turn(turn)


def gate_data(state: GameState, key: str, default: Any = None) -> Any:
    """Read a value stored alongside the open gate."""
    if isinstance(state.turn, AwaitingGate):
        return state.turn.data.get(key, default)
    return default


def is_gate_action(move: Move) -> bool:
    return isinstance(move, (BeginGame, Continue))


def validate_gate_action(state: GameState, move: Move) -> tuple[bool, str | None]:
    """`BeginGame` answers the start gate; `Continue` answers every other gate."""
    gate = state.gate
    if gate is None:
        return False, "invalid_gate_action"
    if isinstance(move, BeginGame) and gate == START_GAME:
        return True, None
    if isinstance(move, Continue) and gate != START_GAME:
        return True, None
    return False, "invalid_gate_action"
