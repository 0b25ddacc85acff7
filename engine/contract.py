"""Uniform interface every game rule module implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Generic, Mapping, Sequence, TypeVar

from .move import Move
from .state import GameState, SeatInfo
from .turn import Simultaneous

StateT = TypeVar("StateT", bound=GameState)
MoveT = TypeVar("MoveT", bound=Move)


class Difficulty(str, Enum):
    """AI strength levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"

    @classmethod
    def parse(cls, value: str | None) -> "Difficulty":
        try:
            return cls((value or cls.BEGINNER.value).strip().lower())
        except ValueError:
            return cls.BEGINNER


class GameType(str, Enum):
    CARD = "card"
    BOARD = "board"
    DICE = "dice"


@dataclass(frozen=True)
class GameMetadata:
    """Static description of a game, as listed to clients."""

    id: str
    name: str
    type: GameType
    min_players: int
    max_players: int
    has_teams: bool = False
    ai_supported: bool = True
    description: str = ""
    rules: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "min_players": self.min_players,
            "max_players": self.max_players,
            "has_teams": self.has_teams,
            "ai_supported": self.ai_supported,
            "description": self.description,
            "rules": dict(self.rules),
        }


@dataclass(frozen=True)
class EndCheck:
    """Outcome of an end-of-game check."""

    ended: bool
    reason: str | None = None
    winners: tuple[int, ...] | None = None

    @classmethod
    def not_ended(cls) -> "EndCheck":
        return cls(ended=False)


class GameModule(ABC, Generic[StateT, MoveT]):
    """Abstract interface that every game implementation must satisfy.

    All methods are pure: they read the given state and return a new one.
    """

    state_type: ClassVar[type[GameState]] = GameState

    @abstractmethod
    def register(self) -> GameMetadata:
        """Return static metadata for the registry."""

    @abstractmethod
    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> StateT:
        """Seed phase, seat mapping and score containers. Does not deal."""

    @abstractmethod
    def deal_or_setup(self, state: StateT) -> StateT:
        """Deal hands or lay out the board for a new round."""

    @abstractmethod
    def validate_move(self, state: StateT, seat: int, move: MoveT) -> tuple[bool, str | None]:
        """Return whether a move is legal and a reason code when it is not."""

    @abstractmethod
    def apply_move(self, state: StateT, seat: int, move: MoveT) -> StateT:
        """Apply a validated move and return the next state."""

    @abstractmethod
    def advance_turn(self, state: StateT) -> StateT:
        """Hand the turn to whoever acts next."""

    @abstractmethod
    def check_end_condition(self, state: StateT) -> EndCheck:
        """Return whether the game is over, why, and who won."""

    @abstractmethod
    def score_round(self, state: StateT) -> StateT:
        """Apply the round's scoring formula."""

    @abstractmethod
    def ai_move(self, state: StateT, seat: int, difficulty: Difficulty) -> MoveT | None:
        """Return a legal move for an AI seat, or None when it has none."""

    @abstractmethod
    def get_valid_moves(self, state: StateT, seat: int) -> list[MoveT]:
        """Enumerate legal moves for a seat."""

    @abstractmethod
    def get_public_state(self, state: StateT, viewer_seat: int | None) -> dict[str, Any]:
        """Return the state as `viewer_seat` may see it."""

    @abstractmethod
    def parse_move(self, data: Mapping[str, Any]) -> MoveT:
        """Parse a move payload sent by a client."""

    @property
    def game_id(self) -> str:
        return self.register().id

    def simultaneous_pending_seats(self, state: StateT) -> frozenset[int]:
        """Seats that still owe a move in the current simultaneous phase."""
        return frozenset()

    def is_simultaneous(self, state: StateT) -> bool:
        return isinstance(state.turn, Simultaneous)

    def resolve_pending(self, state: StateT) -> StateT:
        """Resolve a completed trick or round held in `AwaitingResolution`."""
        return state

    def forfeit_winners(self, state: StateT, seat: int) -> tuple[int, ...]:
        """Winners when `seat` forfeits. Default: every other seat."""
        return tuple(other for other in state.seats() if other != seat)

    def decode_state(self, data: Mapping[str, Any]) -> StateT:
        return self.state_type.from_dict(data)  # type: ignore[return-value]
