"""Hearts game implementation."""

from __future__ import annotations

from dataclasses import replace
from itertools import combinations
from typing import Any, Mapping, Sequence

from engine.cards import (
    TrickPlay,
    card_suit,
    card_value,
    deal,
    has_suit,
    highest,
    lowest,
    only_suit,
    redact_hands,
    remove_card,
    replace_at,
    shuffle,
    sort_hand,
    standard_deck,
    trick_winner,
)
from engine.contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from engine.gates import is_gate_action, validate_gate_action
from engine.move import Continue, Move
from engine.rng import derive_rng
from engine.state import SeatInfo
from engine.turn import AwaitingGate, AwaitingResolution, Simultaneous, Turn, TurnState

from .hearts_moves import PassCards, PlayCard, move_from_dict
from .hearts_state import NUM_SEATS, PASS_COUNT, PASS_ROTATION, HeartsState, PassDirection, Phase

MAX_SCORE = 100
MOON_POINTS = 26
OPENING_CARD = "clubs_2"
QUEEN_OF_SPADES = "spades_Q"
BEGINNER_RANDOM_PERCENT = 30
NEXT_ROUND = "next_round"


def card_points(card: str) -> int:
    if card == QUEEN_OF_SPADES:
        return 13
    return 1 if card_suit(card) == "hearts" else 0


def _holder_of(hands: Sequence[Sequence[str]], card: str) -> int:
    for seat, hand in enumerate(hands):
        if card in hand:
            return seat
    return 0


class HeartsGame(GameModule[HeartsState, Move]):
    """Four-player Hearts with a simultaneous passing phase. Lowest score wins."""

    state_type = HeartsState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="hearts",
            name="Hearts",
            type=GameType.CARD,
            min_players=NUM_SEATS,
            max_players=NUM_SEATS,
            has_teams=False,
            ai_supported=True,
            description="Avoid hearts and the Queen of Spades, or take them all and shoot the moon.",
            rules={
                "objective": f"Have the lowest score when someone reaches {MAX_SCORE} points.",
                "setup": "4 players, 13 cards each. Pass 3 cards left, right, across, then hold.",
                "gameplay": "The 2 of clubs leads. Follow suit if possible. Hearts cannot be led until broken.",
                "winning": "Each heart is 1 point, the Queen of Spades is 13.",
                "notes": "Take all 26 points to shoot the moon: everyone else scores 26.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> HeartsState:
        return HeartsState(turn=Simultaneous(), players=tuple(players))

    def deal_or_setup(self, state: HeartsState) -> HeartsState:
        rng = derive_rng(state.seed, "deal", state.round_number)
        dealt = deal(shuffle(standard_deck(), rng), NUM_SEATS, 13)
        hands = tuple(sort_hand(hand) for hand in dealt.hands)
        direction = PASS_ROTATION[(state.round_number - 1) % len(PASS_ROTATION)]
        state = replace(
            state,
            phase=Phase.PLAYING if direction is PassDirection.NONE else Phase.PASSING,
            pass_direction=direction,
            hands=hands,
            passed_cards=((),) * NUM_SEATS,
            received_cards=((),) * NUM_SEATS,
            trick=(),
            last_trick=(),
            trick_leader=_holder_of(hands, OPENING_CARD),
            hearts_broken=False,
            tricks_taken=(0,) * NUM_SEATS,
            points_taken=(0,) * NUM_SEATS,
            moon_shooter=None,
        )
        return state.with_turn(self._turn_for(state))

    # Rules

    def simultaneous_pending_seats(self, state: HeartsState) -> frozenset[int]:
        if state.phase is not Phase.PASSING:
            return frozenset()
        return frozenset(seat for seat, passed in enumerate(state.passed_cards) if not passed)

    def validate_move(self, state: HeartsState, seat: int, move: Move) -> tuple[bool, str | None]:
        if is_gate_action(move):
            return validate_gate_action(state, move)
        if state.phase is Phase.PASSING:
            if not isinstance(move, PassCards):
                return False, "invalid_move"
            if state.passed_cards[seat]:
                return False, "already_passed"
            if len(move.cards) != PASS_COUNT:
                return False, "invalid_pass"
            if any(card not in state.hands[seat] for card in move.cards):
                return False, "invalid_card"
            return True, None
        if state.phase is Phase.PLAYING:
            if not isinstance(move, PlayCard):
                return False, "invalid_move"
            if not state.is_turn_of(seat):
                return False, "not_your_turn"
            return self._validate_card(state, seat, move.card)
        return False, "invalid_phase"

    def _validate_card(self, state: HeartsState, seat: int, card: str) -> tuple[bool, str | None]:
        hand = state.hands[seat]
        if card not in hand:
            return False, "invalid_card"
        first_trick = state.is_first_trick()
        if first_trick and not state.trick:
            if card != OPENING_CARD:
                return False, "must_lead_2c"
            return True, None
        if state.trick:
            led = card_suit(state.trick[0].card)
            if has_suit(hand, led) and card_suit(card) != led:
                return False, "must_follow"
            if first_trick and card_points(card) and any(not card_points(other) for other in hand):
                return False, "no_points_first"
            return True, None
        if card_suit(card) == "hearts" and not state.hearts_broken and not only_suit(hand, "hearts"):
            return False, "hearts_not_broken"
        return True, None

    def apply_move(self, state: HeartsState, seat: int, move: Move) -> HeartsState:
        if isinstance(move, Continue):
            return self.deal_or_setup(replace(state, round_number=state.round_number + 1))

        if isinstance(move, PassCards):
            state = replace(state, passed_cards=replace_at(state.passed_cards, seat, move.cards))
            if not self.simultaneous_pending_seats(state):
                state = self._exchange(state)
            return state

        if isinstance(move, PlayCard):
            return replace(
                state,
                hands=replace_at(state.hands, seat, remove_card(state.hands[seat], move.card)),
                trick=state.trick + (TrickPlay(seat, move.card),),
                hearts_broken=state.hearts_broken or card_suit(move.card) == "hearts",
            )

        raise ValueError(f"Unsupported move type: {type(move)!r}")

    def _exchange(self, state: HeartsState) -> HeartsState:
        hands = [list(hand) for hand in state.hands]
        received: list[tuple[str, ...]] = [()] * NUM_SEATS
        for seat, passed in enumerate(state.passed_cards):
            for card in passed:
                hands[seat].remove(card)
            received[state.pass_direction.target(seat)] = tuple(passed)
        for seat, cards in enumerate(received):
            hands[seat].extend(cards)
        sorted_hands = tuple(sort_hand(hand) for hand in hands)
        return replace(
            state,
            phase=Phase.PLAYING,
            hands=sorted_hands,
            received_cards=tuple(received),
            trick_leader=_holder_of(sorted_hands, OPENING_CARD),
        )

    def resolve_pending(self, state: HeartsState) -> HeartsState:
        """Take the completed trick, then either hand the lead to its winner or score the round."""
        if not state.trick_complete():
            return state
        winner = trick_winner(state.trick)
        points = sum(card_points(play.card) for play in state.trick)
        state = replace(
            state,
            tricks_taken=replace_at(state.tricks_taken, winner, state.tricks_taken[winner] + 1),
            points_taken=replace_at(state.points_taken, winner, state.points_taken[winner] + points),
            last_trick=state.trick,
            trick=(),
            trick_leader=winner,
        )
        if state.all_hands_empty():
            state = self.score_round(replace(state, phase=Phase.ROUND_END))
        return state.with_turn(self._turn_for(state))

    def advance_turn(self, state: HeartsState) -> HeartsState:
        return state.with_turn(self._turn_for(state))

    def _turn_for(self, state: HeartsState) -> TurnState:
        if state.phase is Phase.PASSING:
            return Simultaneous()
        if state.phase is Phase.PLAYING:
            if state.trick_complete():
                return AwaitingResolution()
            return Turn((state.trick_leader + len(state.trick)) % NUM_SEATS)
        return AwaitingGate(NEXT_ROUND, {"round_number": state.round_number})

    def check_end_condition(self, state: HeartsState) -> EndCheck:
        if state.phase is not Phase.ROUND_END or max(state.scores) < MAX_SCORE:
            return EndCheck.not_ended()
        low = min(state.scores)
        return EndCheck(
            ended=True,
            reason="max_score",
            winners=tuple(seat for seat, score in enumerate(state.scores) if score == low),
        )

    def score_round(self, state: HeartsState) -> HeartsState:
        round_scores = state.points_taken
        shooter = None
        for seat, points in enumerate(round_scores):
            if points == MOON_POINTS:
                shooter = seat
                round_scores = tuple(0 if other == seat else MOON_POINTS for other in range(NUM_SEATS))
                break
        return replace(
            state,
            round_scores=tuple(round_scores),
            scores=tuple(total + points for total, points in zip(state.scores, round_scores)),
            moon_shooter=shooter,
        )

    # AI

    def ai_move(self, state: HeartsState, seat: int, difficulty: Difficulty) -> Move | None:
        if state.gate is not None:
            return Continue()
        if state.phase is Phase.PASSING:
            if seat not in self.simultaneous_pending_seats(state):
                return None
            return PassCards(cards=self._choose_pass(state.hands[seat]))
        valid = self.get_valid_moves(state, seat)
        if not valid:
            return None
        cards = [move.card for move in valid if isinstance(move, PlayCard)]
        if difficulty is Difficulty.BEGINNER:
            rng = derive_rng(state.seed, "ai", state.move_count, seat)
            if rng.randint(1, 100) <= BEGINNER_RANDOM_PERCENT:
                return rng.choice(valid)
        if difficulty is Difficulty.EXPERT:
            return PlayCard(card=self._avoid_points(state, cards))
        return PlayCard(card=lowest(cards))

    def _avoid_points(self, state: HeartsState, cards: Sequence[str]) -> str:
        """Duck under the trick when possible; when void, dump the queen of spades or hearts."""
        if not state.trick:
            safe = [card for card in cards if card_suit(card) != "hearts" and card != QUEEN_OF_SPADES]
            return lowest(safe or cards)
        led = card_suit(state.trick[0].card)
        following = [card for card in cards if card_suit(card) == led]
        if following:
            winning = max(card_value(play.card) for play in state.trick if card_suit(play.card) == led)
            ducks = [card for card in following if card_value(card) < winning]
            if ducks:
                return highest(ducks)
            not_queen = [card for card in following if card != QUEEN_OF_SPADES]
            return highest(not_queen or following)
        if QUEEN_OF_SPADES in cards:
            return QUEEN_OF_SPADES
        hearts = [card for card in cards if card_suit(card) == "hearts"]
        return highest(hearts or cards)

    def _choose_pass(self, hand: Sequence[str]) -> tuple[str, ...]:
        """Queen of spades first, then the highest hearts, then the highest cards."""
        chosen: list[str] = []
        if QUEEN_OF_SPADES in hand:
            chosen.append(QUEEN_OF_SPADES)
        by_rank = sorted(hand, key=lambda card: (-card_value(card), card))
        for card in [card for card in by_rank if card_suit(card) == "hearts"] + by_rank:
            if len(chosen) == PASS_COUNT:
                break
            if card not in chosen:
                chosen.append(card)
        return tuple(chosen)

    def get_valid_moves(self, state: HeartsState, seat: int) -> list[Move]:
        if state.game_over:
            return []
        if state.gate is not None:
            return [Continue()]
        if state.phase is Phase.PASSING:
            if seat not in self.simultaneous_pending_seats(state):
                return []
            return [PassCards(cards=cards) for cards in combinations(state.hands[seat], PASS_COUNT)]
        if not state.is_turn_of(seat):
            return []
        return [
            PlayCard(card=card)
            for card in state.hands[seat]
            if self._validate_card(state, seat, card)[0]
        ]

    def get_public_state(self, state: HeartsState, viewer_seat: int | None) -> dict[str, Any]:
        payload = state.public_dict()
        payload["hands"] = redact_hands(state.hands, viewer_seat)
        payload["passed_cards"] = [
            list(passed) if seat == viewer_seat else bool(passed)
            for seat, passed in enumerate(state.passed_cards)
        ]
        payload["received_cards"] = [
            list(received) if seat == viewer_seat else len(received)
            for seat, received in enumerate(state.received_cards)
        ]
        return payload

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data)
