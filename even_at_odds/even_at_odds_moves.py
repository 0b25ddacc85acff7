"""Move definitions for Even at Odds."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.move import Move, parse_with

from .even_at_odds_state import Parity


class MoveType(str, Enum):
    """Supported move discriminators."""

    PLACE_BID = "PlaceBid"


@dataclass(frozen=True)
class PlaceBid(Move):
    """Secret call on the parity of the total heads."""

    value: Parity
    move_type = MoveType.PLACE_BID.value

    def __post_init__(self) -> None:
        if not isinstance(self.value, Parity):
            object.__setattr__(self, "value", Parity(str(self.value).strip().lower()))


MOVE_TYPES: dict[str, type[Move]] = {MoveType.PLACE_BID.value: PlaceBid}


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse an Even at Odds move from JSON payload."""
    return parse_with(data, MOVE_TYPES, "Even at Odds")
