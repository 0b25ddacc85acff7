"""State for Pig."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from engine.state import GameState

DEFAULT_TARGET_SCORE = 100


@dataclass(frozen=True, kw_only=True)
class PigState(GameState):
    """Immutable Pig state. `turn_complete` marks a bust or a hold awaiting the turn hand-off."""

    active_seat: int = 0
    scores: tuple[int, ...] = ()
    round_total: int = 0
    target_score: int = DEFAULT_TARGET_SCORE
    last_roll: int | None = None
    last_action: str | None = None
    last_player: int | None = None
    turn_complete: bool = False
    history: tuple[dict[str, Any], ...] = ()
