"""Base move abstractions used by all games."""

from __future__ import annotations

from abc import ABC
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, ClassVar, Mapping, Self

from .serialize import to_serializable


class Move(ABC):
    """Base class for a typed command submitted by a seat."""

    move_type: ClassVar[str] = "Move"

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the move."""
        if is_dataclass(self):
            payload = {key: to_serializable(value) for key, value in asdict(self).items()}
        else:
            payload = {
                key: to_serializable(value)
                for key, value in vars(self).items()
                if not key.startswith("_")
            }
        payload["type"] = self.move_type
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build the move from a dictionary payload."""
        kwargs = {key: value for key, value in data.items() if key not in {"type", "move_type"}}
        try:
            return cls(**kwargs)  # type: ignore[misc, call-arg]
        except TypeError as exc:
            raise ValueError(f"Malformed {cls.move_type} payload: {exc}") from exc


@dataclass(frozen=True)
class BeginGame(Move):
    """Acknowledge the `start_game` gate."""

    move_type = "BeginGame"


@dataclass(frozen=True)
class Continue(Move):
    """Acknowledge any other open gate (next round, resolve round, ...)."""

    move_type = "Continue"


GATE_MOVES: dict[str, type[Move]] = {
    BeginGame.move_type: BeginGame,
    Continue.move_type: Continue,
}


def payload_type(data: Mapping[str, Any]) -> str | None:
    """Return the move discriminator from a raw payload."""
    raw = data.get("type") or data.get("move_type")
    return str(raw) if raw is not None else None


def parse_with(data: Mapping[str, Any], move_types: Mapping[str, type[Move]], game_name: str) -> Move:
    """Parse a payload against a game's move table, accepting gate moves too."""
    move_type = payload_type(data)
    table = {**GATE_MOVES, **move_types}
    if move_type not in table:
        raise ValueError(f"Unknown {game_name} move type: {move_type!r}")
    return table[move_type].from_dict(data)
