"""Rule-level tests for Pig."""

from __future__ import annotations

from dataclasses import replace

import pig.pig_game as pig_game
from engine.contract import Difficulty
from engine.state import SeatInfo
from engine.turn import Turn
from pig.pig_game import PigGame, target_from_settings
from pig.pig_moves import Hold, Roll
from pig.pig_state import PigState


class _FixedDie:
    def __init__(self, value: int):
        self.value = value

    def randint(self, low: int, high: int) -> int:
        return self.value


def _fix_die(monkeypatch, value: int) -> None:
    monkeypatch.setattr(pig_game, "derive_rng", lambda *parts: _FixedDie(value))


def _state(**changes) -> PigState:
    players = tuple(SeatInfo(seat=seat, display_name=f"P{seat}") for seat in range(2))
    game = PigGame()
    state = game.deal_or_setup(replace(game.init_state(players, {}), seed=9))
    return replace(state, **changes)


def test_roll_adds_to_turn_total_and_keeps_the_turn(monkeypatch) -> None:
    _fix_die(monkeypatch, 4)
    game = PigGame()
    state = game.advance_turn(game.apply_move(_state(round_total=3), 0, Roll()))
    assert state.round_total == 7
    assert state.last_roll == 4
    assert state.turn == Turn(0)


def test_rolling_a_one_loses_the_turn_total(monkeypatch) -> None:
    _fix_die(monkeypatch, 1)
    game = PigGame()
    state = game.advance_turn(game.apply_move(_state(round_total=12), 0, Roll()))
    assert state.round_total == 0
    assert state.scores == (0, 0)
    assert state.turn == Turn(1)
    assert state.active_seat == 1


def test_hold_banks_the_turn_total() -> None:
    game = PigGame()
    state = game.advance_turn(game.apply_move(_state(round_total=15), 0, Hold()))
    assert state.scores == (15, 0)
    assert state.round_total == 0
    assert state.turn == Turn(1)
    assert state.history[-1] == {"player": 0, "action": "hold"}


def test_hold_without_rolling_is_rejected() -> None:
    game = PigGame()
    assert game.validate_move(_state(), 0, Hold()) == (False, "invalid_hold")
    assert game.get_valid_moves(_state(), 0) == [Roll()]
    assert game.get_valid_moves(_state(round_total=5), 0) == [Roll(), Hold()]
    assert game.get_valid_moves(_state(round_total=5), 1) == []


def test_only_the_active_seat_may_roll_or_hold() -> None:
    game = PigGame()
    assert game.validate_move(_state(), 1, Roll()) == (False, "not_your_turn")
    assert game.validate_move(_state(round_total=5), 1, Hold()) == (False, "not_your_turn")
    assert game.validate_move(_state(), 0, Roll()) == (True, None)


def test_reaching_the_target_ends_the_game() -> None:
    game = PigGame()
    end = game.check_end_condition(_state(scores=(100, 40)))
    assert end.ended
    assert end.reason == "target_reached"
    assert end.winners == (0,)
    assert not game.check_end_condition(_state(scores=(99, 40))).ended


def test_target_score_setting() -> None:
    assert target_from_settings({"target_score": "50"}) == 50
    assert target_from_settings({"target_score": -3}) == 100
    assert target_from_settings({"target_score": "lots"}) == 100
    assert target_from_settings({}) == 100


def test_ai_holds_at_twenty_or_when_it_can_win() -> None:
    game = PigGame()
    assert game.ai_move(_state(), 0, Difficulty.BEGINNER) == Roll()
    assert game.ai_move(_state(round_total=12), 0, Difficulty.BEGINNER) == Roll()
    assert game.ai_move(_state(round_total=20), 0, Difficulty.BEGINNER) == Hold()
    assert game.ai_move(_state(round_total=6, scores=(95, 0)), 0, Difficulty.BEGINNER) == Hold()
    assert game.ai_move(_state(), 1, Difficulty.BEGINNER) is None


def test_parse_accepts_action_alias() -> None:
    game = PigGame()
    assert game.parse_move({"action": "roll"}) == Roll()
    assert game.parse_move({"type": "Hold"}) == Hold()
