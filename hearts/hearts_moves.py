"""Move definitions for Hearts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from engine.move import Move, parse_with


class MoveType(str, Enum):
    """Supported move discriminators."""

    PASS_CARDS = "PassCards"
    PLAY_CARD = "PlayCard"


@dataclass(frozen=True)
class PassCards(Move):
    """Cards handed to the pass target during the passing phase."""

    cards: tuple[str, ...]
    move_type = MoveType.PASS_CARDS.value

    def __post_init__(self) -> None:
        if isinstance(self.cards, str):
            raise ValueError("Cards must be a list of card ids.")
        cards = tuple(str(card).strip() for card in self.cards)
        if len(set(cards)) != len(cards):
            raise ValueError("Cannot pass the same card twice.")
        object.__setattr__(self, "cards", cards)


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
    MoveType.PASS_CARDS.value: PassCards,
    MoveType.PLAY_CARD.value: PlayCard,
}


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Hearts move from JSON payload."""
    if "card" not in data and "card_id" in data:
        translated = dict(data)
        translated["card"] = translated.pop("card_id")
        data = translated
    return parse_with(data, MOVE_TYPES, "Hearts")
