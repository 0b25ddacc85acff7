"""State and enums for Even at Odds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.state import GameState

DEFAULT_TARGET_SCORE = 10


class Phase(str, Enum):
    """Round phases. Every phase change waits on a gate except bidding."""

    WAITING = "waiting"
    BIDDING = "bidding"
    FLIPPING = "flipping"
    SCORING = "scoring"


class Parity(str, Enum):
    EVEN = "even"
    ODD = "odd"


class Coin(str, Enum):
    HEADS = "heads"
    TAILS = "tails"


def _decode_bids(values: Any) -> tuple[Parity | None, ...]:
    return tuple(Parity(value) if value is not None else None for value in values)


def _decode_coins(values: Any) -> tuple[Coin, ...]:
    return tuple(Coin(value) for value in values)


@dataclass(frozen=True, kw_only=True)
class EvenAtOddsState(GameState):
    """Immutable Even at Odds state."""

    phase: Phase = Phase.WAITING
    round: int = 0
    scores: tuple[int, ...] = ()
    bids: tuple[Parity | None, ...] = ()
    coins: tuple[Coin, ...] = ()
    heads: int | None = None
    parity: Parity | None = None
    target_score: int = DEFAULT_TARGET_SCORE
    last_result: Mapping[str, Any] | None = None

    field_decoders = {
        "phase": Phase,
        "bids": _decode_bids,
        "coins": _decode_coins,
        "parity": Parity,
    }
