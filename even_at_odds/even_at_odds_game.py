"""Even at Odds game implementation.

Everyone secretly calls EVEN or ODD, every seat flips a coin, and the callers
who matched the parity of the total heads score a point. Humans pace the
table through three gates: start_game, resolve_round and next_round.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Sequence

from engine.contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from engine.gates import START_GAME, is_gate_action, validate_gate_action
from engine.move import BeginGame, Continue, Move
from engine.rng import derive_rng
from engine.state import SeatInfo
from engine.turn import AwaitingGate, Simultaneous, TurnState

from .even_at_odds_moves import PlaceBid, move_from_dict
from .even_at_odds_state import DEFAULT_TARGET_SCORE, Coin, EvenAtOddsState, Parity, Phase

RESOLVE_ROUND = "resolve_round"
NEXT_ROUND = "next_round"


def target_from_settings(settings: Mapping[str, Any]) -> int:
    try:
        target = int(settings.get("target_score", DEFAULT_TARGET_SCORE))
    except (TypeError, ValueError):
        return DEFAULT_TARGET_SCORE
    return target if target > 0 else DEFAULT_TARGET_SCORE


class EvenAtOddsGame(GameModule[EvenAtOddsState, Move]):
    """Simultaneous parity-calling party game for 2-8 players."""

    state_type = EvenAtOddsState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="even-at-odds",
            name="Even at Odds",
            type=GameType.DICE,
            min_players=2,
            max_players=8,
            has_teams=False,
            ai_supported=True,
            description="A party probability game! Bid on whether the total coin flips will be even or odd.",
            rules={
                "objective": f"Be the first player to reach the target score (default {DEFAULT_TARGET_SCORE}).",
                "setup": "2-8 players, each with one coin. Everyone plays every round at the same time.",
                "gameplay": "Secretly bid EVEN or ODD, then everyone flips. Count the heads.",
                "winning": "Bidders matching the parity of the heads score +1. Highest score at the target wins.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> EvenAtOddsState:
        return EvenAtOddsState(
            turn=AwaitingGate(START_GAME, {"next_round": 1}),
            players=tuple(players),
            scores=(0,) * len(players),
            target_score=target_from_settings(settings),
        )

    def deal_or_setup(self, state: EvenAtOddsState) -> EvenAtOddsState:
        state = replace(state, phase=Phase.WAITING)
        return state.with_turn(self._turn_for(state))

    def simultaneous_pending_seats(self, state: EvenAtOddsState) -> frozenset[int]:
        if state.phase is not Phase.BIDDING:
            return frozenset()
        return frozenset(seat for seat, bid in enumerate(state.bids) if bid is None)

    def validate_move(self, state: EvenAtOddsState, seat: int, move: Move) -> tuple[bool, str | None]:
        if is_gate_action(move):
            return validate_gate_action(state, move)
        if state.phase is not Phase.BIDDING:
            return False, "invalid_phase"
        if not isinstance(move, PlaceBid):
            return False, "invalid_action"
        if state.bids[seat] is not None:
            return False, "already_bid"
        return True, None

    def apply_move(self, state: EvenAtOddsState, seat: int, move: Move) -> EvenAtOddsState:
        if isinstance(move, BeginGame):
            return self._start_round(state, 1)
        if isinstance(move, Continue):
            if state.phase is Phase.FLIPPING:
                return self.score_round(state)
            return self._start_round(state, state.round + 1)
        if isinstance(move, PlaceBid):
            bids = list(state.bids)
            bids[seat] = move.value
            state = replace(state, bids=tuple(bids))
            if not self.simultaneous_pending_seats(state):
                state = self._flip_coins(state)
            return state
        raise ValueError(f"Unsupported move type: {type(move)!r}")

    def _start_round(self, state: EvenAtOddsState, round_number: int) -> EvenAtOddsState:
        return replace(
            state,
            phase=Phase.BIDDING,
            round=round_number,
            bids=(None,) * state.seat_count,
            coins=(),
            heads=None,
            parity=None,
        )

    def _flip_coins(self, state: EvenAtOddsState) -> EvenAtOddsState:
        rng = derive_rng(state.seed, "flip", state.round)
        coins = tuple(Coin.HEADS if rng.randint(0, 1) == 1 else Coin.TAILS for _ in state.seats())
        heads = sum(1 for coin in coins if coin is Coin.HEADS)
        return replace(
            state,
            phase=Phase.FLIPPING,
            coins=coins,
            heads=heads,
            parity=Parity.EVEN if heads % 2 == 0 else Parity.ODD,
        )

    def advance_turn(self, state: EvenAtOddsState) -> EvenAtOddsState:
        return state.with_turn(self._turn_for(state))

    def _turn_for(self, state: EvenAtOddsState) -> TurnState:
        if state.phase is Phase.WAITING:
            return AwaitingGate(START_GAME, {"next_round": 1})
        if state.phase is Phase.BIDDING:
            return Simultaneous()
        if state.phase is Phase.FLIPPING:
            parity = state.parity.value if state.parity is not None else None
            return AwaitingGate(RESOLVE_ROUND, {"heads": state.heads, "parity": parity})
        return AwaitingGate(NEXT_ROUND, {"next_round": state.round + 1})

    def check_end_condition(self, state: EvenAtOddsState) -> EndCheck:
        if state.phase is not Phase.SCORING:
            return EndCheck.not_ended()
        reached = [score for score in state.scores if score >= state.target_score]
        if not reached:
            return EndCheck.not_ended()
        best = max(reached)
        winners = tuple(seat for seat, score in enumerate(state.scores) if score == best)
        return EndCheck(ended=True, reason="target_reached", winners=winners)

    def score_round(self, state: EvenAtOddsState) -> EvenAtOddsState:
        """Award a point to every seat whose call matched the parity of the heads."""
        round_winners = tuple(seat for seat, bid in enumerate(state.bids) if bid is state.parity)
        scores = tuple(score + (1 if seat in round_winners else 0) for seat, score in enumerate(state.scores))
        return replace(
            state,
            phase=Phase.SCORING,
            scores=scores,
            last_result={
                "round": state.round,
                "coins": [coin.value for coin in state.coins],
                "bids": [bid.value if bid is not None else None for bid in state.bids],
                "heads": state.heads,
                "parity": state.parity.value if state.parity is not None else None,
                "round_winners": list(round_winners),
            },
        )

    def ai_move(self, state: EvenAtOddsState, seat: int, difficulty: Difficulty) -> Move | None:
        if seat not in self.simultaneous_pending_seats(state):
            return None
        rng = derive_rng(state.seed, "ai", state.round, seat)
        return PlaceBid(value=rng.choice((Parity.EVEN, Parity.ODD)))

    def get_valid_moves(self, state: EvenAtOddsState, seat: int) -> list[Move]:
        if state.game_over:
            return []
        if state.gate == START_GAME:
            return [BeginGame()]
        if state.gate is not None:
            return [Continue()]
        if seat not in self.simultaneous_pending_seats(state):
            return []
        return [PlaceBid(value=Parity.EVEN), PlaceBid(value=Parity.ODD)]

    def get_public_state(self, state: EvenAtOddsState, viewer_seat: int | None) -> dict[str, Any]:
        payload = state.public_dict()
        if state.phase is Phase.BIDDING:
            payload["bids"] = [
                (bid.value if bid is not None else None)
                if seat == viewer_seat
                else ("hidden" if bid is not None else None)
                for seat, bid in enumerate(state.bids)
            ]
        return payload

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data)
