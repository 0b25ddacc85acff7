"""Diamonds game implementation.

Diamonds are trump but every captured diamond or joker costs the capturing
team a point. Four jokers join the deck; they never follow suit and lose to
any other card.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Mapping, Sequence

from engine.cards import (
    JOKER,
    TrickPlay,
    card_rank,
    card_suit,
    card_value,
    deal,
    deck_with_jokers,
    has_suit,
    is_joker,
    lowest,
    redact_hands,
    remove_card,
    replace_at,
    shuffle,
    sort_hand,
    trick_winner,
)
from engine.contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from engine.gates import is_gate_action, validate_gate_action
from engine.move import Continue, Move
from engine.rng import derive_rng
from engine.state import SeatInfo
from engine.turn import AwaitingGate, Turn, TurnState
from spades.spades_game import LOSE_SCORE, WIN_SCORE, score_team, team_limit_check
from spades.spades_state import NIL

from .diamonds_moves import MAX_BID, Bid, PlayCard, move_from_dict
from .diamonds_state import CARDS_EACH, NUM_SEATS, TEAMS, DiamondsState, Phase

SOFT_MOON_THRESHOLD = 10
SOFT_MOON_BONUS = 50
NEXT_ROUND = "next_round"
TRUMP = "diamonds"
SUIT_ORDER = {"spades": 0, "hearts": 1, "clubs": 2, "diamonds": 3}
SIDE_SUITS = ("spades", "hearts", "clubs")


def _by_value(cards: Sequence[str]) -> list[str]:
    return sorted(cards, key=lambda card: (card_value(card), card))


class DiamondsGame(GameModule[DiamondsState, Move]):
    """Four-player partnership Diamonds."""

    state_type = DiamondsState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="diamonds",
            name="Diamonds",
            type=GameType.CARD,
            min_players=NUM_SEATS,
            max_players=NUM_SEATS,
            has_teams=True,
            ai_supported=True,
            description="Diamonds are always trump, but they hurt you. Avoid capturing Diamonds and Jokers!",
            rules={
                "objective": f"Be the first team to reach {WIN_SCORE} points while avoiding diamond penalties.",
                "setup": "4 players in 2 partnerships. 56-card deck (52 + 4 Jokers), 14 cards each.",
                "gameplay": "Bid nil or 1-14. Follow suit if possible. Diamonds beat other suits. Jokers always lose.",
                "winning": "Make your bid: 10 x bid + 1 per overtrick. Each Diamond or Joker captured = -1.",
                "notes": "Soft Moon: capture 10+ Diamonds to cancel the diamond penalty and earn +50.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> DiamondsState:
        return DiamondsState(turn=Turn(1), players=tuple(players), dealer=0, trick_leader=1)

    def deal_or_setup(self, state: DiamondsState) -> DiamondsState:
        rng = derive_rng(state.seed, "deal", state.round_number)
        dealt = deal(shuffle(deck_with_jokers(), rng), NUM_SEATS, CARDS_EACH)
        state = replace(
            state,
            phase=Phase.BIDDING,
            hands=tuple(sort_hand(hand, SUIT_ORDER) for hand in dealt.hands),
            bids=(None,) * NUM_SEATS,
            tricks_won=(0,) * NUM_SEATS,
            diamonds_captured=(0, 0),
            jokers_captured=(0, 0),
            trick=(),
            last_trick=(),
            trick_leader=(state.dealer + 1) % NUM_SEATS,
        )
        return state.with_turn(self._turn_for(state))

    # Rules

    def validate_move(self, state: DiamondsState, seat: int, move: Move) -> tuple[bool, str | None]:
        if is_gate_action(move):
            return validate_gate_action(state, move)
        if state.phase is Phase.BIDDING:
            if not isinstance(move, Bid):
                return False, "invalid_move"
            if not state.is_turn_of(seat):
                return False, "not_your_turn"
            if move.bid != NIL and not 1 <= move.bid <= MAX_BID:
                return False, "invalid_bid"
            return True, None
        if state.phase is Phase.PLAYING:
            if not isinstance(move, PlayCard):
                return False, "invalid_move"
            if not state.is_turn_of(seat):
                return False, "not_your_turn"
            return self._validate_card(state, seat, move.card)
        return False, "invalid_phase"

    def _validate_card(self, state: DiamondsState, seat: int, card: str) -> tuple[bool, str | None]:
        hand = state.hands[seat]
        if card not in hand:
            return False, "invalid_card"
        if not state.trick:
            if is_joker(card) and any(not is_joker(other) for other in hand):
                return False, "cannot_lead_joker"
            return True, None
        led = card_suit(state.trick[0].card)
        if led != JOKER and has_suit(hand, led) and card_suit(card) != led:
            return False, "must_follow"
        return True, None

    def apply_move(self, state: DiamondsState, seat: int, move: Move) -> DiamondsState:
        if isinstance(move, Continue):
            state = replace(state, dealer=(state.dealer + 1) % NUM_SEATS, round_number=state.round_number + 1)
            return self.deal_or_setup(state)

        if isinstance(move, Bid):
            state = replace(state, bids=replace_at(state.bids, seat, move.bid))
            if state.bids_placed() == NUM_SEATS:
                state = replace(state, phase=Phase.PLAYING)
            return state

        if isinstance(move, PlayCard):
            state = replace(
                state,
                hands=replace_at(state.hands, seat, remove_card(state.hands[seat], move.card)),
                trick=state.trick + (TrickPlay(seat, move.card),),
            )
            if len(state.trick) == NUM_SEATS:
                state = self._resolve_trick(state)
            return state

        raise ValueError(f"Unsupported move type: {type(move)!r}")

    def _resolve_trick(self, state: DiamondsState) -> DiamondsState:
        winner = trick_winner(state.trick, trump=TRUMP)
        team = winner % 2
        diamonds = sum(1 for play in state.trick if card_suit(play.card) == TRUMP)
        jokers = sum(1 for play in state.trick if is_joker(play.card))
        state = replace(
            state,
            tricks_won=replace_at(state.tricks_won, winner, state.tricks_won[winner] + 1),
            diamonds_captured=replace_at(state.diamonds_captured, team, state.diamonds_captured[team] + diamonds),
            jokers_captured=replace_at(state.jokers_captured, team, state.jokers_captured[team] + jokers),
            last_trick=state.trick,
            trick=(),
            trick_leader=winner,
        )
        if state.all_hands_empty():
            state = self.score_round(replace(state, phase=Phase.ROUND_END))
        return state

    def advance_turn(self, state: DiamondsState) -> DiamondsState:
        return state.with_turn(self._turn_for(state))

    def _turn_for(self, state: DiamondsState) -> TurnState:
        if state.phase is Phase.BIDDING:
            return Turn((state.dealer + 1 + state.bids_placed()) % NUM_SEATS)
        if state.phase is Phase.PLAYING:
            return Turn((state.trick_leader + len(state.trick)) % NUM_SEATS)
        return AwaitingGate(NEXT_ROUND, {"round_number": state.round_number})

    def check_end_condition(self, state: DiamondsState) -> EndCheck:
        if state.phase is not Phase.ROUND_END:
            return EndCheck.not_ended()
        return team_limit_check(state.team_scores, WIN_SCORE, LOSE_SCORE)

    def score_round(self, state: DiamondsState) -> DiamondsState:
        scores = list(state.team_scores)
        bags = list(state.team_bags)
        details = []
        for team, seats in enumerate(TEAMS):
            contract = score_team(state.bids, state.tricks_won, seats, bags[team])
            captured = state.diamonds_captured[team]
            soft_moon = captured >= SOFT_MOON_THRESHOLD
            diamonds_penalty = 0 if soft_moon else captured
            jokers_penalty = state.jokers_captured[team]
            total = contract.points - diamonds_penalty - jokers_penalty
            if soft_moon:
                total += SOFT_MOON_BONUS
            scores[team] += total
            bags[team] = contract.bags
            details.append(
                {
                    **contract.to_dict(),
                    "diamonds_captured": captured,
                    "diamonds_penalty": diamonds_penalty,
                    "jokers_penalty": jokers_penalty,
                    "soft_moon": soft_moon,
                    "soft_moon_bonus": SOFT_MOON_BONUS if soft_moon else 0,
                    "round_total": total,
                }
            )
        return replace(state, team_scores=tuple(scores), team_bags=tuple(bags), round_details=tuple(details))

    def forfeit_winners(self, state: DiamondsState, seat: int) -> tuple[int, ...]:
        return TEAMS[1 - seat % 2]

    # AI

    def ai_move(self, state: DiamondsState, seat: int, difficulty: Difficulty) -> Move | None:
        if state.gate is not None:
            return Continue()
        rng = derive_rng(state.seed, "ai", state.move_count, seat)
        if state.phase is Phase.BIDDING:
            return self._ai_bid(state.hands[seat], difficulty, rng)

        valid = self.get_valid_moves(state, seat)
        if not valid:
            return None
        if difficulty is Difficulty.BEGINNER and rng.randint(1, 100) <= 30:
            return rng.choice(valid)
        playable = [move.card for move in valid if isinstance(move, PlayCard)]
        if not state.trick:
            return PlayCard(card=self._ai_lead(playable, difficulty, rng))
        return PlayCard(card=self._ai_follow(state, seat, playable))

    def _ai_bid(self, hand: Sequence[str], difficulty: Difficulty, rng: random.Random) -> Bid:
        non_jokers = [card for card in hand if not is_joker(card)]
        diamonds = [card for card in non_jokers if card_suit(card) == TRUMP]
        tricks = 0.0
        for card in non_jokers:
            if card_suit(card) == TRUMP:
                continue
            tricks += {"A": 1.0, "K": 0.7, "Q": 0.3}.get(card_rank(card), 0.0)
        for card in diamonds:
            tricks += {"A": 0.8, "K": 0.5}.get(card_rank(card), 0.0)
        if len(diamonds) >= 5:
            tricks *= 0.8
        if diamonds:
            tricks += 0.5 * sum(1 for suit in SIDE_SUITS if not has_suit(non_jokers, suit))

        high_cards = [card for card in non_jokers if card_rank(card) in ("A", "K", "Q", "J")]
        if tricks < 0.8 and len(diamonds) <= 1 and len(high_cards) <= 1:
            return Bid(bid=NIL)

        bid = max(1, int(tricks + 0.5))
        if difficulty is Difficulty.BEGINNER:
            bid += rng.randint(-2, 1)
        elif difficulty is Difficulty.INTERMEDIATE:
            bid += rng.randint(-1, 1)
        return Bid(bid=max(1, min(MAX_BID, bid)))

    def _ai_lead(self, playable: Sequence[str], difficulty: Difficulty, rng: random.Random) -> str:
        non_jokers = [card for card in playable if not is_joker(card)]
        if not non_jokers:
            return playable[0]
        safe = _by_value([card for card in non_jokers if card_suit(card) != TRUMP])
        if safe:
            if difficulty is Difficulty.EXPERT and rng.randint(1, 100) <= 40:
                return safe[-1]
            return safe[min(len(safe) - 1, 2)]
        return lowest(non_jokers)

    def _ai_follow(self, state: DiamondsState, seat: int, playable: Sequence[str]) -> str:
        """Win cheaply unless the partner already holds the trick; shed jokers when void."""
        led = card_suit(state.trick[0].card)
        partner = (seat + 2) % NUM_SEATS
        leader_seat = trick_winner(state.trick, trump=TRUMP)
        leading = next(play.card for play in state.trick if play.seat == leader_seat)
        partner_winning = leader_seat == partner

        following = _by_value([card for card in playable if card_suit(card) == led]) if led != JOKER else []
        if following:
            trump_winning = card_suit(leading) == TRUMP
            if partner_winning or (trump_winning and led != TRUMP):
                return following[0]
            for card in following:
                if card_value(card) > card_value(leading):
                    return card
            return following[0]

        jokers = [card for card in playable if is_joker(card)]
        if jokers:
            return jokers[0]
        side = [card for card in playable if card_suit(card) != TRUMP]
        if side:
            return lowest(side)
        diamonds = _by_value(playable)
        if not partner_winning and card_suit(leading) == TRUMP:
            for card in diamonds:
                if card_value(card) > card_value(leading):
                    return card
        return diamonds[0]

    def get_valid_moves(self, state: DiamondsState, seat: int) -> list[Move]:
        if state.game_over:
            return []
        if state.gate is not None:
            return [Continue()]
        if not state.is_turn_of(seat):
            return []
        if state.phase is Phase.BIDDING:
            return [Bid(bid=NIL)] + [Bid(bid=value) for value in range(1, MAX_BID + 1)]
        return [
            PlayCard(card=card)
            for card in state.hands[seat]
            if self._validate_card(state, seat, card)[0]
        ]

    def get_public_state(self, state: DiamondsState, viewer_seat: int | None) -> dict[str, Any]:
        payload = state.public_dict()
        payload["hands"] = redact_hands(state.hands, viewer_seat)
        return payload

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data)
