"""Move definitions for Checkers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.move import Move, parse_with

from .checkers_state import Square


class MoveType(str, Enum):
    """Supported move discriminators."""

    MOVE_PIECE = "MovePiece"


def _square(value: Any) -> Square:
    """Accept `[row, col]` or `{"row": r, "col": c}`."""
    if isinstance(value, Mapping):
        return int(value["row"]), int(value["col"])
    row, col = value
    return int(row), int(col)


@dataclass(frozen=True)
class MovePiece(Move):
    """Slide or jump one piece diagonally."""

    from_square: Square
    to_square: Square
    move_type = MoveType.MOVE_PIECE.value

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_square", _square(self.from_square))
        object.__setattr__(self, "to_square", _square(self.to_square))

    @property
    def is_jump(self) -> bool:
        return abs(self.to_square[0] - self.from_square[0]) == 2


MOVE_TYPES: dict[str, type[Move]] = {MoveType.MOVE_PIECE.value: MovePiece}


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Checkers move; `from`/`to` are accepted as aliases of the square fields."""
    if "from" in data or "to" in data:
        translated = {key: value for key, value in data.items() if key not in {"from", "to", "is_capture"}}
        translated["from_square"] = data.get("from")
        translated["to_square"] = data.get("to")
        translated.setdefault("type", MoveType.MOVE_PIECE.value)
        data = translated
    return parse_with(data, MOVE_TYPES, "Checkers")
