"""Rule-level tests for Even at Odds and its gates."""

from __future__ import annotations

from dataclasses import replace

from engine.contract import Difficulty
from engine.gates import START_GAME
from engine.move import BeginGame, Continue
from engine.state import SeatInfo
from engine.turn import Simultaneous
from even_at_odds.even_at_odds_game import EvenAtOddsGame
from even_at_odds.even_at_odds_moves import PlaceBid
from even_at_odds.even_at_odds_state import Coin, EvenAtOddsState, Parity, Phase


def _started(seats: int = 2, settings: dict | None = None) -> EvenAtOddsState:
    players = tuple(SeatInfo(seat=seat, display_name=f"P{seat}") for seat in range(seats))
    game = EvenAtOddsGame()
    state = replace(game.init_state(players, settings or {}), seed=17)
    return game.deal_or_setup(state)


def _play(game: EvenAtOddsGame, state: EvenAtOddsState, seat: int, move) -> EvenAtOddsState:
    assert game.validate_move(state, seat, move) == (True, None)
    return game.advance_turn(game.apply_move(state, seat, move))


def test_game_waits_at_the_start_gate() -> None:
    game = EvenAtOddsGame()
    state = _started()
    assert state.gate == START_GAME
    assert game.get_valid_moves(state, 0) == [BeginGame()]
    assert game.validate_move(state, 0, Continue()) == (False, "invalid_gate_action")


def test_round_flow_through_bidding_flipping_and_scoring() -> None:
    game = EvenAtOddsGame()
    state = _play(game, _started(), 0, BeginGame())
    assert state.phase is Phase.BIDDING
    assert state.turn == Simultaneous()
    assert game.simultaneous_pending_seats(state) == frozenset({0, 1})

    state = _play(game, state, 1, PlaceBid(value=Parity.ODD))
    assert game.simultaneous_pending_seats(state) == frozenset({0})
    state = _play(game, state, 0, PlaceBid(value="even"))

    assert state.phase is Phase.FLIPPING
    assert state.gate == "resolve_round"
    assert len(state.coins) == 2
    assert state.heads == sum(1 for coin in state.coins if coin is Coin.HEADS)
    assert state.parity is (Parity.EVEN if state.heads % 2 == 0 else Parity.ODD)

    state = _play(game, state, 1, Continue())
    assert state.phase is Phase.SCORING
    winner = 0 if state.parity is Parity.EVEN else 1
    assert state.scores[winner] == 1
    assert sum(state.scores) == 1
    assert state.last_result["round_winners"] == [winner]
    assert state.gate == "next_round"

    state = _play(game, state, 0, Continue())
    assert state.round == 2
    assert state.bids == (None, None)


def test_one_point_target_ends_after_the_first_round() -> None:
    game = EvenAtOddsGame()
    state = _play(game, _started(settings={"target_score": 1}), 0, BeginGame())
    state = _play(game, state, 0, PlaceBid(value=Parity.EVEN))
    state = _play(game, state, 1, PlaceBid(value=Parity.ODD))
    scored = game.apply_move(state, 0, Continue())
    end = game.check_end_condition(scored)
    assert end.ended
    assert end.reason == "target_reached"
    assert end.winners == ((0,) if scored.parity is Parity.EVEN else (1,))


def test_bidding_rejections() -> None:
    game = EvenAtOddsGame()
    state = _play(game, _started(), 0, BeginGame())
    state = game.apply_move(state, 0, PlaceBid(value=Parity.EVEN))
    assert game.validate_move(state, 0, PlaceBid(value=Parity.ODD)) == (False, "already_bid")
    assert game.validate_move(_started(), 0, PlaceBid(value=Parity.ODD)) == (False, "invalid_phase")


def test_other_bids_stay_hidden_while_bidding() -> None:
    game = EvenAtOddsGame()
    state = _play(game, _started(seats=3), 0, BeginGame())
    state = game.apply_move(state, 1, PlaceBid(value=Parity.ODD))
    state = game.apply_move(state, 0, PlaceBid(value=Parity.EVEN))
    payload = game.get_public_state(state, 0)
    assert payload["bids"] == ["even", "hidden", None]
    assert "seed" not in payload


def test_ai_places_a_bid_only_when_pending() -> None:
    game = EvenAtOddsGame()
    state = _play(game, _started(), 0, BeginGame())
    move = game.ai_move(state, 1, Difficulty.BEGINNER)
    assert isinstance(move, PlaceBid)
    state = game.apply_move(state, 1, move)
    assert game.ai_move(state, 1, Difficulty.BEGINNER) is None
