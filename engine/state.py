"""State conventions for immutable, serializable game states."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Callable, ClassVar, Mapping, Self

from .serialize import digest, freeze, to_serializable
from .turn import AwaitingGate, Turn, TurnState, seat_of, turn_from_dict


@dataclass(frozen=True)
class SeatInfo:
    """Who sits in a seat, as seen by a game module."""

    seat: int
    display_name: str
    is_ai: bool = False
    ai_difficulty: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SeatInfo":
        return cls(
            seat=int(data["seat"]),
            display_name=str(data["display_name"]),
            is_ai=bool(data.get("is_ai", False)),
            ai_difficulty=data.get("ai_difficulty"),
        )


@dataclass(frozen=True, kw_only=True)
class GameState:
    """Base immutable state shared by every game module.

    Subclasses add their own fields and may list per-field decoders in
    `field_decoders` so `from_dict` can rebuild enums and nested records.
    """

    turn: TurnState
    players: tuple[SeatInfo, ...] = ()
    seed: int = 0
    move_count: int = 0
    last_move_at: float = 0.0
    game_over: bool = False
    end_reason: str | None = None
    winners: tuple[int, ...] | None = None

    field_decoders: ClassVar[Mapping[str, Callable[[Any], Any]]] = {}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {field.name: to_serializable(getattr(self, field.name)) for field in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a state instance from serialized data."""
        known = {field.name for field in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "turn":
                kwargs[key] = turn_from_dict(value)
            elif key == "players":
                kwargs[key] = tuple(SeatInfo.from_dict(item) for item in value)
            elif key in cls.field_decoders and value is not None:
                kwargs[key] = cls.field_decoders[key](value)
            else:
                kwargs[key] = freeze(value)
        return cls(**kwargs)

    def state_digest(self) -> str:
        """Return a deterministic digest for etags and logging."""
        return digest(self.to_dict())

    @property
    def current_seat(self) -> int | None:
        return seat_of(self.turn)

    @property
    def gate(self) -> str | None:
        if isinstance(self.turn, AwaitingGate):
            return self.turn.gate
        return None

    @property
    def seat_count(self) -> int:
        return len(self.players)

    def seats(self) -> list[int]:
        return [player.seat for player in self.players]

    def seat_info(self, seat: int) -> SeatInfo | None:
        for player in self.players:
            if player.seat == seat:
                return player
        return None

    def is_turn_of(self, seat: int) -> bool:
        return self.turn == Turn(seat)

    def with_turn(self, turn: TurnState) -> Self:
        return replace(self, turn=turn)

    def public_dict(self) -> dict[str, Any]:
        """Serialized state without the RNG seed, the base for per-viewer projections."""
        payload = self.to_dict()
        payload.pop("seed", None)
        return payload
