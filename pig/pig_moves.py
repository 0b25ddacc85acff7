"""Move definitions for Pig."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.move import Move, parse_with


class MoveType(str, Enum):
    """Supported move discriminators."""

    ROLL = "Roll"
    HOLD = "Hold"


@dataclass(frozen=True)
class Roll(Move):
    """Roll the die and add it to the turn total; a 1 busts."""

    move_type = MoveType.ROLL.value


@dataclass(frozen=True)
class Hold(Move):
    """Bank the turn total and pass the die."""

    move_type = MoveType.HOLD.value


MOVE_TYPES: dict[str, type[Move]] = {
    MoveType.ROLL.value: Roll,
    MoveType.HOLD.value: Hold,
}

ACTION_ALIASES = {"roll": MoveType.ROLL.value, "hold": MoveType.HOLD.value}


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Pig move; `{"action": "roll"}` is accepted as well as `{"type": "Roll"}`."""
    if "type" not in data and "move_type" not in data and "action" in data:
        action = str(data["action"]).lower()
        if action not in ACTION_ALIASES:
            raise ValueError(f"Unknown Pig action: {action!r}")
        data = {"type": ACTION_ALIASES[action]}
    return parse_with(data, MOVE_TYPES, "Pig")
