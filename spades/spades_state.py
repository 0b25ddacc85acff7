"""State and enums for Spades."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.cards import TrickPlay, decode_trick
from engine.state import GameState

NUM_SEATS = 4
TEAMS: tuple[tuple[int, int], ...] = ((0, 2), (1, 3))
NIL = 0


class Phase(str, Enum):
    """Round phases."""

    BIDDING = "bidding"
    PLAYING = "playing"
    ROUND_END = "round_end"


def team_of(seat: int) -> int:
    return seat % 2


@dataclass(frozen=True, kw_only=True)
class SpadesState(GameState):
    """Immutable Spades state."""

    phase: Phase = Phase.BIDDING
    dealer: int = 0
    round_number: int = 1
    hands: tuple[tuple[str, ...], ...] = ((),) * NUM_SEATS
    bids: tuple[int | None, ...] = (None,) * NUM_SEATS
    tricks_won: tuple[int, ...] = (0,) * NUM_SEATS
    trick: tuple[TrickPlay, ...] = ()
    trick_leader: int = 1
    last_trick: tuple[TrickPlay, ...] = ()
    spades_broken: bool = False
    team_scores: tuple[int, ...] = (0, 0)
    team_bags: tuple[int, ...] = (0, 0)
    last_round: Mapping[str, Any] | None = None

    field_decoders = {"phase": Phase, "trick": decode_trick, "last_trick": decode_trick}

    def bids_placed(self) -> int:
        return sum(1 for bid in self.bids if bid is not None)

    def all_hands_empty(self) -> bool:
        return all(not hand for hand in self.hands)
