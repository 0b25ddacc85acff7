"""Move definitions for Spades."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.move import Move, parse_with

from .spades_state import NIL


class MoveType(str, Enum):
    """Supported move discriminators."""

    BID = "Bid"
    PLAY_CARD = "PlayCard"


def normalize_bid(value: Any) -> int:
    """`"nil"` and `0` both mean nil; anything else must be an integer."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "nil":
            return NIL
        value = text
    if isinstance(value, bool):
        raise ValueError("Bid must be 'nil' or a number.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Bid must be 'nil' or a number; received {value!r}.") from exc


@dataclass(frozen=True)
class Bid(Move):
    """Number of tricks a seat expects to take; 0 is a nil bid."""

    bid: int
    move_type = MoveType.BID.value

    def __post_init__(self) -> None:
        object.__setattr__(self, "bid", normalize_bid(self.bid))


@dataclass(frozen=True)
class PlayCard(Move):
    """Play one card from hand into the current trick."""

    card: str
    move_type = MoveType.PLAY_CARD.value

    def __post_init__(self) -> None:
        card = str(self.card).strip()
        if not card:
            raise ValueError("Card must be non-empty.")
        object.__setattr__(self, "card", card)


MOVE_TYPES: dict[str, type[Move]] = {
    MoveType.BID.value: Bid,
    MoveType.PLAY_CARD.value: PlayCard,
}


def move_from_dict(data: Mapping[str, Any], game_name: str = "Spades") -> Move:
    """Parse a trick-game move; `card_id` is accepted as an alias of `card`."""
    if "card" not in data and "card_id" in data:
        translated = dict(data)
        translated["card"] = translated.pop("card_id")
        data = translated
    return parse_with(data, MOVE_TYPES, game_name)
