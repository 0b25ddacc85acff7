"""Spades game implementation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Sequence

from engine.cards import (
    TrickPlay,
    card_suit,
    card_value,
    deal,
    has_suit,
    lead_suit,
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
from engine.turn import AwaitingGate, Turn, TurnState

from .spades_moves import Bid, PlayCard, move_from_dict
from .spades_state import NIL, NUM_SEATS, TEAMS, Phase, SpadesState, team_of

WIN_SCORE = 500
LOSE_SCORE = -200
BAG_LIMIT = 10
BAG_PENALTY = 100
NIL_BONUS = 100
MAX_BID = 13
NEXT_ROUND = "next_round"
BEGINNER_RANDOM_PERCENT = 30


@dataclass(frozen=True)
class TeamScore:
    """One team's result for a round of a bid-and-bags game."""

    bid: int
    tricks: int
    points: int
    bags: int
    bags_added: int
    bag_penalty: bool
    nil_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "bid": self.bid,
            "tricks": self.tricks,
            "points": self.points,
            "bags": self.bags,
            "bags_added": self.bags_added,
            "bag_penalty": self.bag_penalty,
            "nil_points": self.nil_points,
        }


def score_team(
    bids: Sequence[int | None],
    tricks_won: Sequence[int],
    seats: Sequence[int],
    bags: int,
) -> TeamScore:
    """Contract scoring: bid x 10 plus one per overtrick, bags wrap at ten for -100, nil is +/-100.

    Tricks taken by a nil bidder do not count toward the partner's contract.
    """
    team_bid = 0
    team_tricks = 0
    nil_points = 0
    for seat in seats:
        bid = bids[seat] or NIL
        if bid == NIL:
            nil_points += NIL_BONUS if tricks_won[seat] == 0 else -NIL_BONUS
        else:
            team_bid += bid
            team_tricks += tricks_won[seat]

    points = 0
    bags_added = 0
    penalty = False
    if team_bid > 0 and team_tricks >= team_bid:
        bags_added = team_tricks - team_bid
        points = team_bid * 10 + bags_added
        bags += bags_added
        if bags >= BAG_LIMIT:
            points -= BAG_PENALTY
            bags -= BAG_LIMIT
            penalty = True
    elif team_bid > 0:
        points = -team_bid * 10

    return TeamScore(
        bid=team_bid,
        tricks=team_tricks,
        points=points + nil_points,
        bags=bags,
        bags_added=bags_added,
        bag_penalty=penalty,
        nil_points=nil_points,
    )


def team_limit_check(team_scores: Sequence[int], win_score: int, lose_score: int) -> EndCheck:
    """First team at or above `win_score` wins; a team at or below `lose_score` loses."""
    for team, score in enumerate(team_scores):
        if score >= win_score:
            return EndCheck(ended=True, reason="win_score", winners=TEAMS[team])
        if score <= lose_score:
            return EndCheck(ended=True, reason="lose_score", winners=TEAMS[1 - team])
    return EndCheck.not_ended()


def estimate_spades_bid(hand: Sequence[str]) -> int:
    """Count sure tricks: high spades, off-suit aces and half a trick per off-suit king."""
    spades = [card for card in hand if card_suit(card) == "spades"]
    tricks = 0.0
    for card in spades:
        value = card_value(card)
        if value >= 12:
            tricks += 1
        elif value >= 10 and len(spades) >= 4:
            tricks += 0.5
    for card in hand:
        if card_suit(card) == "spades":
            continue
        if card_value(card) == 14:
            tricks += 1
        elif card_value(card) == 13:
            tricks += 0.5
    return max(1, int(tricks + 0.5))


class SpadesGame(GameModule[SpadesState, Move]):
    """Four-player partnership Spades. Teams are seats (0, 2) and (1, 3)."""

    state_type = SpadesState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="spades",
            name="Spades",
            type=GameType.CARD,
            min_players=NUM_SEATS,
            max_players=NUM_SEATS,
            has_teams=True,
            ai_supported=True,
            description="Partnership trick-taking with spades as trump. Bid and make your tricks!",
            rules={
                "objective": f"Be the first team to reach {WIN_SCORE} points by bidding and winning tricks.",
                "setup": "4 players in 2 partnerships (teammates sit across). 13 cards each. Spades are always trump.",
                "gameplay": "Bid nil or 1-13. Follow suit if possible. Spades cannot be led until broken.",
                "winning": "Make your bid: 10 per trick bid + 1 per overtrick. Fail: lose 10 x bid.",
                "notes": "Nil: +100 if you take no tricks, -100 otherwise. 10 bags = -100.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> SpadesState:
        return SpadesState(
            turn=Turn(1),
            players=tuple(players),
            dealer=0,
            trick_leader=1,
        )

    def deal_or_setup(self, state: SpadesState) -> SpadesState:
        rng = derive_rng(state.seed, "deal", state.round_number)
        dealt = deal(shuffle(standard_deck(), rng), NUM_SEATS, 13)
        leader = (state.dealer + 1) % NUM_SEATS
        state = replace(
            state,
            phase=Phase.BIDDING,
            hands=tuple(sort_hand(hand) for hand in dealt.hands),
            bids=(None,) * NUM_SEATS,
            tricks_won=(0,) * NUM_SEATS,
            trick=(),
            last_trick=(),
            trick_leader=leader,
            spades_broken=False,
        )
        return state.with_turn(self._turn_for(state))

    # Rules

    def validate_move(self, state: SpadesState, seat: int, move: Move) -> tuple[bool, str | None]:
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

    def _validate_card(self, state: SpadesState, seat: int, card: str) -> tuple[bool, str | None]:
        hand = state.hands[seat]
        if card not in hand:
            return False, "invalid_card"
        suit = lead_suit(state.trick)
        if suit is not None:
            if has_suit(hand, suit) and card_suit(card) != suit:
                return False, "must_follow"
            return True, None
        if not state.spades_broken and card_suit(card) == "spades" and not only_suit(hand, "spades"):
            return False, "spades_not_broken"
        return True, None

    def apply_move(self, state: SpadesState, seat: int, move: Move) -> SpadesState:
        if isinstance(move, Continue):
            state = replace(
                state,
                dealer=(state.dealer + 1) % NUM_SEATS,
                round_number=state.round_number + 1,
            )
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
                spades_broken=state.spades_broken or card_suit(move.card) == "spades",
            )
            if len(state.trick) == NUM_SEATS:
                state = self._resolve_trick(state)
            return state

        raise ValueError(f"Unsupported move type: {type(move)!r}")

    def _resolve_trick(self, state: SpadesState) -> SpadesState:
        winner = trick_winner(state.trick, trump="spades")
        state = replace(
            state,
            tricks_won=replace_at(state.tricks_won, winner, state.tricks_won[winner] + 1),
            last_trick=state.trick,
            trick=(),
            trick_leader=winner,
        )
        if state.all_hands_empty():
            state = self.score_round(replace(state, phase=Phase.ROUND_END))
        return state

    def advance_turn(self, state: SpadesState) -> SpadesState:
        return state.with_turn(self._turn_for(state))

    def _turn_for(self, state: SpadesState) -> TurnState:
        if state.phase is Phase.BIDDING:
            return Turn((state.dealer + 1 + state.bids_placed()) % NUM_SEATS)
        if state.phase is Phase.PLAYING:
            return Turn((state.trick_leader + len(state.trick)) % NUM_SEATS)
        return AwaitingGate(NEXT_ROUND, {"round_number": state.round_number})

    def check_end_condition(self, state: SpadesState) -> EndCheck:
        if state.phase is not Phase.ROUND_END:
            return EndCheck.not_ended()
        return team_limit_check(state.team_scores, WIN_SCORE, LOSE_SCORE)

    def score_round(self, state: SpadesState) -> SpadesState:
        results = [
            score_team(state.bids, state.tricks_won, seats, state.team_bags[team])
            for team, seats in enumerate(TEAMS)
        ]
        return replace(
            state,
            team_scores=tuple(score + result.points for score, result in zip(state.team_scores, results)),
            team_bags=tuple(result.bags for result in results),
            last_round={
                "round_number": state.round_number,
                "teams": [result.to_dict() for result in results],
            },
        )

    def forfeit_winners(self, state: SpadesState, seat: int) -> tuple[int, ...]:
        return TEAMS[1 - team_of(seat)]

    # AI

    def ai_move(self, state: SpadesState, seat: int, difficulty: Difficulty) -> Move | None:
        if state.gate is not None:
            return Continue()
        rng = derive_rng(state.seed, "ai", state.move_count, seat)
        hand = state.hands[seat]

        if state.phase is Phase.BIDDING:
            bid = estimate_spades_bid(hand)
            if difficulty is Difficulty.BEGINNER:
                bid = max(1, min(MAX_BID, bid + rng.randint(-1, 1)))
            return Bid(bid=bid)

        valid = self.get_valid_moves(state, seat)
        if not valid:
            return None
        if difficulty is Difficulty.BEGINNER and rng.randint(1, 100) <= BEGINNER_RANDOM_PERCENT:
            return rng.choice(valid)

        cards = [move.card for move in valid if isinstance(move, PlayCard)]
        suit = lead_suit(state.trick)
        if suit is None:
            off_suit = [card for card in cards if card_suit(card) != "spades"]
            return PlayCard(card=lowest(off_suit or cards))
        following = [card for card in cards if card_suit(card) == suit]
        if following:
            return PlayCard(card=lowest(following))
        non_spades = [card for card in cards if card_suit(card) != "spades"]
        return PlayCard(card=lowest(non_spades or cards))

    def get_valid_moves(self, state: SpadesState, seat: int) -> list[Move]:
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

    def get_public_state(self, state: SpadesState, viewer_seat: int | None) -> dict[str, Any]:
        payload = state.public_dict()
        payload["hands"] = redact_hands(state.hands, viewer_seat)
        return payload

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data, "Spades")
