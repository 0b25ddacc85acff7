"""Playing-card helpers shared by the trick-taking games.

Cards are plain string ids (``"spades_A"``, ``"hearts_10"``, ``"joker_2"``) so
hands serialize as JSON lists and compare cheaply.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

SUITS: tuple[str, ...] = ("spades", "hearts", "diamonds", "clubs")
RANKS: tuple[str, ...] = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
JOKER = "joker"

RANK_VALUES: dict[str, int] = {rank: index + 2 for index, rank in enumerate(RANKS)}
DEFAULT_SUIT_ORDER: dict[str, int] = {"spades": 0, "hearts": 1, "diamonds": 2, "clubs": 3}


class TrickPlay(NamedTuple):
    """One card played into a trick."""

    seat: int
    card: str


def decode_trick(value: Iterable[Any]) -> tuple[TrickPlay, ...]:
    """Rebuild trick plays from ``[[seat, card], ...]`` or ``[{"seat", "card"}, ...]``."""
    plays = []
    for item in value:
        if isinstance(item, Mapping):
            plays.append(TrickPlay(int(item["seat"]), str(item["card"])))
        else:
            seat, card = item
            plays.append(TrickPlay(int(seat), str(card)))
    return tuple(plays)


def card_id(suit: str, rank: str) -> str:
    return f"{suit}_{rank}"


def card_suit(card: str) -> str:
    return card.split("_", 1)[0]


def card_rank(card: str) -> str:
    suit, _, rank = card.partition("_")
    return JOKER if suit == JOKER else rank


def card_value(card: str) -> int:
    """Rank value 2..14 (ace high); jokers are worth 0."""
    return RANK_VALUES.get(card_rank(card), 0)


def is_joker(card: str) -> bool:
    return card_suit(card) == JOKER


def standard_deck() -> tuple[str, ...]:
    """The 52-card deck in suit-then-rank order."""
    return tuple(card_id(suit, rank) for suit in SUITS for rank in RANKS)


def deck_with_jokers(count: int = 4) -> tuple[str, ...]:
    return standard_deck() + tuple(f"{JOKER}_{index}" for index in range(1, count + 1))


def shuffle(deck: Sequence[str], rng: random.Random) -> tuple[str, ...]:
    cards = list(deck)
    rng.shuffle(cards)
    return tuple(cards)


@dataclass(frozen=True)
class Deal:
    """Result of dealing: one hand per seat plus the undealt remainder."""

    hands: tuple[tuple[str, ...], ...]
    remaining: tuple[str, ...]


def deal(deck: Sequence[str], num_players: int, cards_each: int) -> Deal:
    """Deal round-robin, one card at a time, like a dealer at the table."""
    if num_players <= 0 or cards_each < 0:
        raise ValueError("num_players must be positive and cards_each non-negative.")
    needed = num_players * cards_each
    if needed > len(deck):
        raise ValueError(f"Cannot deal {needed} cards from a deck of {len(deck)}.")
    hands: list[list[str]] = [[] for _ in range(num_players)]
    for index in range(needed):
        hands[index % num_players].append(deck[index])
    return Deal(hands=tuple(tuple(hand) for hand in hands), remaining=tuple(deck[needed:]))


def has_suit(hand: Iterable[str], suit: str) -> bool:
    return any(card_suit(card) == suit for card in hand)


def only_suit(hand: Iterable[str], suit: str) -> bool:
    """True when every card in a non-empty hand belongs to `suit`."""
    cards = list(hand)
    return bool(cards) and all(card_suit(card) == suit for card in cards)


def remove_card(hand: Sequence[str], card: str) -> tuple[str, ...]:
    """Return the hand without one copy of `card`."""
    cards = list(hand)
    cards.remove(card)
    return tuple(cards)


def sort_hand(hand: Iterable[str], suit_order: Mapping[str, int] | None = None) -> tuple[str, ...]:
    """Group by suit, highest rank first; unknown suits (jokers) go last."""
    order = suit_order or DEFAULT_SUIT_ORDER
    return tuple(sorted(hand, key=lambda card: (order.get(card_suit(card), len(order)), -card_value(card), card)))


def lowest(cards: Iterable[str]) -> str:
    return min(cards, key=lambda card: (card_value(card), card))


def highest(cards: Iterable[str]) -> str:
    return max(cards, key=lambda card: (card_value(card), card))


def replace_at(values: Sequence[Any], index: int, value: Any) -> tuple[Any, ...]:
    """Copy of a per-seat tuple with one slot replaced."""
    items = list(values)
    items[index] = value
    return tuple(items)


def lead_suit(trick: Sequence[TrickPlay]) -> str | None:
    """Suit to follow: the first non-joker card played, if any."""
    for play in trick:
        if not is_joker(play.card):
            return card_suit(play.card)
    return None


def _beats(card: str, best: str, trump: str | None) -> bool:
    if card_suit(card) == card_suit(best):
        return card_value(card) > card_value(best)
    return trump is not None and card_suit(card) == trump


def trick_winner(trick: Sequence[TrickPlay], trump: str | None = None) -> int:
    """Seat that takes the trick.

    Highest trump wins, else highest card of the led suit. Jokers never win
    unless every card is a joker, in which case the first one does.
    """
    if not trick:
        raise ValueError("Cannot score an empty trick.")
    ranked = [play for play in trick if not is_joker(play.card)]
    if not ranked:
        return trick[0].seat
    best = ranked[0]
    for play in ranked[1:]:
        if _beats(play.card, best.card, trump):
            best = play
    return best.seat


def redact_hands(hands: Sequence[Sequence[str]], viewer_seat: int | None) -> list[Any]:
    """Show the viewer's own hand; every other hand becomes a card count."""
    return [list(hand) if seat == viewer_seat else len(hand) for seat, hand in enumerate(hands)]
