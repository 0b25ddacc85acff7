"""State and enums for Hearts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from engine.cards import TrickPlay, decode_trick
from engine.state import GameState

NUM_SEATS = 4
PASS_COUNT = 3


class Phase(str, Enum):
    """Round phases."""

    PASSING = "passing"
    PLAYING = "playing"
    ROUND_END = "round_end"


class PassDirection(str, Enum):
    """Where passed cards go; rotates every round."""

    LEFT = "left"
    RIGHT = "right"
    ACROSS = "across"
    NONE = "none"

    def target(self, seat: int) -> int:
        offset = {"left": 1, "right": 3, "across": 2, "none": 0}[self.value]
        return (seat + offset) % NUM_SEATS


PASS_ROTATION: tuple[PassDirection, ...] = (
    PassDirection.LEFT,
    PassDirection.RIGHT,
    PassDirection.ACROSS,
    PassDirection.NONE,
)


@dataclass(frozen=True, kw_only=True)
class HeartsState(GameState):
    """Immutable Hearts state."""

    phase: Phase = Phase.PASSING
    round_number: int = 1
    pass_direction: PassDirection = PassDirection.LEFT
    hands: tuple[tuple[str, ...], ...] = ((),) * NUM_SEATS
    passed_cards: tuple[tuple[str, ...], ...] = ((),) * NUM_SEATS
    received_cards: tuple[tuple[str, ...], ...] = ((),) * NUM_SEATS
    trick: tuple[TrickPlay, ...] = ()
    trick_leader: int = 0
    last_trick: tuple[TrickPlay, ...] = ()
    hearts_broken: bool = False
    tricks_taken: tuple[int, ...] = (0,) * NUM_SEATS
    points_taken: tuple[int, ...] = (0,) * NUM_SEATS
    round_scores: tuple[int, ...] = (0,) * NUM_SEATS
    scores: tuple[int, ...] = (0,) * NUM_SEATS
    moon_shooter: int | None = None

    field_decoders = {
        "phase": Phase,
        "pass_direction": PassDirection,
        "trick": decode_trick,
        "last_trick": decode_trick,
    }

    def is_first_trick(self) -> bool:
        return sum(self.tricks_taken) == 0

    def trick_complete(self) -> bool:
        return len(self.trick) == NUM_SEATS

    def all_hands_empty(self) -> bool:
        return all(not hand for hand in self.hands)
