"""Tagged turn states: whose move it is, or why nobody may move right now."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class Turn:
    """A single seat must act."""

    seat: int

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "turn", "seat": self.seat}


@dataclass(frozen=True)
class AwaitingResolution:
    """A trick or round is complete and waits for the engine's resolution step."""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "awaiting_resolution"}


@dataclass(frozen=True)
class AwaitingGate:
    """A human must acknowledge before play continues."""

    gate: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "awaiting_gate", "gate": self.gate, "data": dict(self.data)}


@dataclass(frozen=True)
class Simultaneous:
    """Several seats submit moves independently of turn order."""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "simultaneous"}


TurnState = Turn | AwaitingResolution | AwaitingGate | Simultaneous


def turn_from_dict(data: Mapping[str, Any]) -> TurnState:
    """Decode a turn tag produced by `to_dict`."""
    kind = data.get("kind")
    if kind == "turn":
        return Turn(seat=int(data["seat"]))
    if kind == "awaiting_resolution":
        return AwaitingResolution()
    if kind == "awaiting_gate":
        return AwaitingGate(gate=str(data["gate"]), data=dict(data.get("data") or {}))
    if kind == "simultaneous":
        return Simultaneous()
    raise ValueError(f"Unknown turn kind: {kind!r}")


def seat_of(turn: TurnState) -> int | None:
    """Return the acting seat, or None when no single seat holds the turn."""
    if isinstance(turn, Turn):
        return turn.seat
    return None
