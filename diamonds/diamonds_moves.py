"""Move definitions for Diamonds. Bidding and card play share the Spades move shapes."""

from __future__ import annotations

from typing import Any, Mapping

from engine.move import Move
from spades.spades_moves import Bid, MoveType, PlayCard
from spades.spades_moves import move_from_dict as _trick_move_from_dict

MAX_BID = 14


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Diamonds move from JSON payload."""
    return _trick_move_from_dict(data, "Diamonds")


__all__ = ["MAX_BID", "Bid", "MoveType", "PlayCard", "move_from_dict"]
