"""Pig game implementation."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Sequence

from engine.contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from engine.move import Move
from engine.rng import derive_rng
from engine.state import SeatInfo
from engine.turn import Turn

from .pig_moves import Hold, Roll, move_from_dict
from .pig_state import DEFAULT_TARGET_SCORE, PigState

AI_HOLD_AT = 20
HISTORY_LIMIT = 50


def target_from_settings(settings: Mapping[str, Any]) -> int:
    """Positive `target_score` setting, else the default."""
    try:
        target = int(settings.get("target_score", DEFAULT_TARGET_SCORE))
    except (TypeError, ValueError):
        return DEFAULT_TARGET_SCORE
    return target if target > 0 else DEFAULT_TARGET_SCORE


class PigGame(GameModule[PigState, Move]):
    """Push-your-luck dice game for 2-6 players."""

    state_type = PigState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="pig",
            name="Pig",
            type=GameType.DICE,
            min_players=2,
            max_players=6,
            has_teams=False,
            ai_supported=True,
            description="A push-your-luck dice game. Roll to build your turn total, or hold to bank points.",
            rules={
                "objective": f"Be the first player to reach the target score (default {DEFAULT_TARGET_SCORE}).",
                "setup": "2-6 players with one standard die. Players take turns in seat order.",
                "gameplay": "Roll 2-6 to add to your turn total. Roll a 1 and lose the turn total. Hold to bank it.",
                "winning": "First player to reach or exceed the target score wins.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> PigState:
        return PigState(
            turn=Turn(0),
            players=tuple(players),
            active_seat=0,
            scores=(0,) * len(players),
            target_score=target_from_settings(settings),
        )

    def deal_or_setup(self, state: PigState) -> PigState:
        return state.with_turn(Turn(state.active_seat))

    def validate_move(self, state: PigState, seat: int, move: Move) -> tuple[bool, str | None]:
        if not state.is_turn_of(seat):
            return False, "not_your_turn"
        if isinstance(move, Roll):
            return True, None
        if isinstance(move, Hold):
            if state.round_total <= 0:
                return False, "invalid_hold"
            return True, None
        return False, "invalid_action"

    def apply_move(self, state: PigState, seat: int, move: Move) -> PigState:
        if isinstance(move, Roll):
            roll = derive_rng(state.seed, "roll", state.move_count).randint(1, 6)
            bust = roll == 1
            return replace(
                state,
                round_total=0 if bust else state.round_total + roll,
                last_roll=roll,
                last_action="roll",
                last_player=seat,
                turn_complete=bust,
                history=self._logged(state, {"player": seat, "action": "roll", "roll": roll}),
            )
        if isinstance(move, Hold):
            scores = list(state.scores)
            scores[seat] += state.round_total
            return replace(
                state,
                scores=tuple(scores),
                round_total=0,
                last_roll=None,
                last_action="hold",
                last_player=seat,
                turn_complete=True,
                history=self._logged(state, {"player": seat, "action": "hold"}),
            )
        raise ValueError(f"Unsupported move type: {type(move)!r}")

    def _logged(self, state: PigState, entry: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        return (state.history + (entry,))[-HISTORY_LIMIT:]

    def advance_turn(self, state: PigState) -> PigState:
        if not state.turn_complete:
            return state.with_turn(Turn(state.active_seat))
        next_seat = (state.active_seat + 1) % state.seat_count
        return replace(state, active_seat=next_seat, turn_complete=False, turn=Turn(next_seat))

    def check_end_condition(self, state: PigState) -> EndCheck:
        reached = [score for score in state.scores if score >= state.target_score]
        if not reached:
            return EndCheck.not_ended()
        best = max(reached)
        winners = tuple(seat for seat, score in enumerate(state.scores) if score == best)
        return EndCheck(ended=True, reason="target_reached", winners=winners)

    def score_round(self, state: PigState) -> PigState:
        return state

    def ai_move(self, state: PigState, seat: int, difficulty: Difficulty) -> Move | None:
        if state.game_over or not state.is_turn_of(seat):
            return None
        banked = state.scores[seat]
        if state.round_total > 0 and (
            banked + state.round_total >= state.target_score or state.round_total >= AI_HOLD_AT
        ):
            return Hold()
        return Roll()

    def get_valid_moves(self, state: PigState, seat: int) -> list[Move]:
        if state.game_over or not state.is_turn_of(seat):
            return []
        if state.round_total > 0:
            return [Roll(), Hold()]
        return [Roll()]

    def get_public_state(self, state: PigState, viewer_seat: int | None) -> dict[str, Any]:
        return state.public_dict()

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data)
