"""Rule-level tests for Checkers: forced captures, multi-jumps and kings."""

from __future__ import annotations

from dataclasses import replace

from checkers.checkers_game import CheckersGame, evaluate, has_capture, legal_moves
from checkers.checkers_moves import MovePiece
from checkers.checkers_state import (
    BLACK,
    BLACK_KING,
    EMPTY,
    WHITE,
    CheckersState,
    Square,
    empty_board,
    starting_board,
)
from engine.contract import Difficulty
from engine.state import SeatInfo
from engine.turn import Turn


def _players() -> tuple[SeatInfo, ...]:
    return (SeatInfo(seat=0, display_name="Black"), SeatInfo(seat=1, display_name="White"))


def _board(pieces: dict[Square, int]):
    return tuple(
        tuple(pieces.get((row, col), EMPTY) for col in range(8))
        for row in range(8)
    )


def _state(pieces: dict[Square, int], active_seat: int = 0) -> CheckersState:
    board = _board(pieces)
    return CheckersState(
        turn=Turn(active_seat),
        players=_players(),
        seed=5,
        board=board,
        active_seat=active_seat,
        must_jump=has_capture(board, active_seat),
    )


def _move(start: Square, end: Square) -> MovePiece:
    return MovePiece(from_square=start, to_square=end)


def _play(game: CheckersGame, state: CheckersState, move: MovePiece) -> CheckersState:
    seat = state.active_seat
    assert game.validate_move(state, seat, move) == (True, None)
    return game.advance_turn(game.apply_move(state, seat, move))


def test_starting_position() -> None:
    game = CheckersGame()
    state = game.deal_or_setup(game.init_state(_players(), {}))
    assert state.count_pieces(0) == 12
    assert state.count_pieces(1) == 12
    assert state.turn == Turn(0)
    assert len(game.get_valid_moves(state, 0)) == 7
    assert game.get_valid_moves(state, 1) == []
    assert state.board == starting_board()
    assert empty_board()[0] == (EMPTY,) * 8


def test_basic_rejections() -> None:
    game = CheckersGame()
    state = _state({(2, 1): BLACK, (3, 2): BLACK, (5, 0): WHITE})
    assert game.validate_move(state, 0, _move((2, 1), (1, 0))) == (False, "wrong_direction")
    assert game.validate_move(state, 0, _move((2, 1), (3, 2))) == (False, "occupied")
    assert game.validate_move(state, 0, _move((5, 0), (4, 1))) == (False, "not_your_piece")
    assert game.validate_move(state, 0, _move((3, 2), (3, 3))) == (False, "invalid_move")
    assert game.validate_move(state, 0, _move((3, 2), (5, 4))) == (False, "invalid_jump")
    assert game.validate_move(state, 0, _move((2, 1), (9, 9))) == (False, "out_of_bounds")
    assert game.validate_move(state, 1, _move((5, 0), (4, 1))) == (False, "not_your_turn")


def test_capture_is_mandatory() -> None:
    game = CheckersGame()
    state = _state({(2, 1): BLACK, (3, 2): WHITE, (2, 5): BLACK, (7, 0): WHITE})
    assert state.must_jump
    assert game.validate_move(state, 0, _move((2, 5), (3, 6))) == (False, "must_capture")
    assert game.get_valid_moves(state, 0) == [_move((2, 1), (4, 3))]

    after = _play(game, state, _move((2, 1), (4, 3)))
    assert after.board[3][2] == EMPTY
    assert after.captured == (1, 0)
    assert after.turn == Turn(1)


def test_multi_jump_keeps_the_turn_until_finished() -> None:
    game = CheckersGame()
    state = _state({(2, 1): BLACK, (3, 2): WHITE, (5, 4): WHITE, (2, 7): BLACK})

    middle = _play(game, state, _move((2, 1), (4, 3)))
    assert middle.jump_piece == (4, 3)
    assert middle.turn == Turn(0)
    assert game.get_valid_moves(middle, 0) == [_move((4, 3), (6, 5))]
    assert game.validate_move(middle, 0, _move((2, 7), (3, 6))) == (False, "must_continue_jump")
    assert not game.check_end_condition(middle).ended

    done = _play(game, middle, _move((4, 3), (6, 5)))
    assert done.jump_piece is None
    assert done.captured == (2, 0)
    end = game.check_end_condition(done)
    assert end.ended
    assert end.reason == "captured_all"
    assert end.winners == (0,)


def test_reaching_the_far_row_crowns_a_king() -> None:
    game = CheckersGame()
    state = _state({(6, 1): BLACK, (1, 6): WHITE})
    crowned = _play(game, state, _move((6, 1), (7, 0)))
    assert crowned.board[7][0] == BLACK_KING

    backwards = replace(crowned, active_seat=0, turn=Turn(0))
    assert game.validate_move(backwards, 0, _move((7, 0), (6, 1))) == (True, None)


def test_side_without_moves_loses() -> None:
    game = CheckersGame()
    state = _state({(7, 0): WHITE, (6, 1): BLACK, (5, 2): BLACK}, active_seat=1)
    assert legal_moves(state) == []
    end = game.check_end_condition(state)
    assert end.ended
    assert end.reason == "no_moves"
    assert end.winners == (0,)


def test_ai_takes_forced_capture_at_every_level() -> None:
    game = CheckersGame()
    state = _state({(2, 1): BLACK, (3, 2): WHITE, (2, 5): BLACK, (7, 0): WHITE})
    for difficulty in Difficulty:
        assert game.ai_move(state, 0, difficulty) == _move((2, 1), (4, 3))
    assert game.ai_move(state, 1, Difficulty.EXPERT) is None


def test_expert_ai_returns_a_legal_opening_move() -> None:
    game = CheckersGame()
    state = replace(game.deal_or_setup(game.init_state(_players(), {})), seed=99)
    move = game.ai_move(state, 0, Difficulty.EXPERT)
    assert move in legal_moves(state)


def test_evaluation_favours_material() -> None:
    board = _board({(2, 1): BLACK, (3, 2): BLACK, (5, 0): WHITE})
    assert evaluate(board, 0) > 0
    assert evaluate(board, 1) == -evaluate(board, 0)


def test_parse_move_accepts_row_col_objects() -> None:
    game = CheckersGame()
    expected = _move((2, 1), (3, 2))
    assert game.parse_move({"from": {"row": 2, "col": 1}, "to": {"row": 3, "col": 2}}) == expected
    assert game.parse_move({"type": "MovePiece", "from_square": [2, 1], "to_square": [3, 2]}) == expected
    assert game.parse_move(expected.to_dict()) == expected


def test_state_survives_serialization_mid_jump() -> None:
    game = CheckersGame()
    state = _state({(2, 1): BLACK, (3, 2): WHITE, (5, 4): WHITE})
    middle = _play(game, state, _move((2, 1), (4, 3)))
    restored = game.decode_state(middle.to_dict())
    assert restored == middle
