"""Checkers game implementation.

Standard 8x8 rules: men move diagonally forward, kings both ways, captures
are mandatory and a piece that can keep jumping must keep jumping.
"""

from __future__ import annotations

import math
import random
from dataclasses import replace
from typing import Any, Mapping, Sequence

from engine.contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from engine.move import Move
from engine.rng import derive_rng
from engine.state import SeatInfo
from engine.turn import Turn

from .checkers_moves import MovePiece, move_from_dict
from .checkers_state import (
    BLACK,
    BLACK_KING,
    BOARD_SIZE,
    EMPTY,
    WHITE,
    WHITE_KING,
    Board,
    CheckersState,
    Square,
    is_king,
    owner_of,
    starting_board,
)

# Seat 0 (black) moves down the board, seat 1 (white) moves up.
FORWARD = (1, -1)
MEN = (BLACK, WHITE)
KINGS = (BLACK_KING, WHITE_KING)
PROMOTION_ROW = (BOARD_SIZE - 1, 0)

BEGINNER_CAPTURE_PERCENT = 75
INTERMEDIATE_SEARCH_PERCENT = 50
INTERMEDIATE_DEPTH = 2
EXPERT_DEPTH = 4
WIN_SCORE = 1_000_000


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


def directions(piece: int) -> list[tuple[int, int]]:
    seat = owner_of(piece)
    if seat is None:
        return []
    if is_king(piece):
        return [(1, -1), (1, 1), (-1, -1), (-1, 1)]
    forward = FORWARD[seat]
    return [(forward, -1), (forward, 1)]


def _with_cells(board: Board, changes: Mapping[Square, int]) -> Board:
    return tuple(
        tuple(changes.get((row, col), piece) for col, piece in enumerate(cells))
        for row, cells in enumerate(board)
    )


def jumps_from(board: Board, square: Square) -> list[MovePiece]:
    row, col = square
    piece = board[row][col]
    seat = owner_of(piece)
    moves: list[MovePiece] = []
    for d_row, d_col in directions(piece):
        mid_row, mid_col = row + d_row, col + d_col
        end_row, end_col = row + 2 * d_row, col + 2 * d_col
        if not in_bounds(end_row, end_col) or board[end_row][end_col] != EMPTY:
            continue
        victim = owner_of(board[mid_row][mid_col])
        if victim is not None and victim != seat:
            moves.append(MovePiece(square, (end_row, end_col)))
    return moves


def steps_from(board: Board, square: Square) -> list[MovePiece]:
    row, col = square
    moves: list[MovePiece] = []
    for d_row, d_col in directions(board[row][col]):
        end_row, end_col = row + d_row, col + d_col
        if in_bounds(end_row, end_col) and board[end_row][end_col] == EMPTY:
            moves.append(MovePiece(square, (end_row, end_col)))
    return moves


def squares_of(board: Board, seat: int) -> list[Square]:
    return [
        (row, col)
        for row in range(BOARD_SIZE)
        for col in range(BOARD_SIZE)
        if owner_of(board[row][col]) == seat
    ]


def has_capture(board: Board, seat: int) -> bool:
    return any(jumps_from(board, square) for square in squares_of(board, seat))


def legal_moves(state: CheckersState) -> list[MovePiece]:
    """Moves for the side to move: forced continuation, else captures, else steps."""
    if state.jump_piece is not None:
        return jumps_from(state.board, state.jump_piece)
    seat = state.active_seat
    captures = [move for square in squares_of(state.board, seat) for move in jumps_from(state.board, square)]
    if captures:
        return captures
    return [move for square in squares_of(state.board, seat) for move in steps_from(state.board, square)]


def play(state: CheckersState, move: MovePiece) -> CheckersState:
    """Apply a move for the side to move; no validation."""
    seat = state.active_seat
    (from_row, from_col), (to_row, to_col) = move.from_square, move.to_square
    piece = state.board[from_row][from_col]
    promoted = not is_king(piece) and to_row == PROMOTION_ROW[seat]
    changes = {
        move.from_square: EMPTY,
        move.to_square: KINGS[seat] if promoted else piece,
    }
    captured = list(state.captured)
    if move.is_jump:
        changes[((from_row + to_row) // 2, (from_col + to_col) // 2)] = EMPTY
        captured[seat] += 1
    board = _with_cells(state.board, changes)

    # A man that was just crowned ends the turn even if a jump is available.
    if move.is_jump and not promoted and jumps_from(board, move.to_square):
        return replace(
            state,
            board=board,
            captured=tuple(captured),
            jump_piece=move.to_square,
            must_jump=True,
        )
    next_seat = 1 - seat
    return replace(
        state,
        board=board,
        captured=tuple(captured),
        active_seat=next_seat,
        jump_piece=None,
        must_jump=has_capture(board, next_seat),
    )


def evaluate(board: Board, seat: int) -> int:
    """Material plus a small bonus for advancing men, from `seat`'s point of view."""
    score = 0.0
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            piece = board[row][col]
            owner = owner_of(piece)
            if owner is None:
                continue
            value = 3.0 if is_king(piece) else 1.0
            if not is_king(piece):
                value += 0.1 * (row if owner == 0 else BOARD_SIZE - 1 - row)
            score += value if owner == seat else -value
    return round(score * 100)


def minimax(state: CheckersState, depth: int, alpha: float, beta: float, seat: int) -> float:
    moves = legal_moves(state)
    if not moves:
        return -WIN_SCORE if state.active_seat == seat else WIN_SCORE
    if depth == 0:
        return evaluate(state.board, seat)
    if state.active_seat == seat:
        best = -math.inf
        for move in moves:
            best = max(best, minimax(play(state, move), depth - 1, alpha, beta, seat))
            alpha = max(alpha, best)
            if beta <= alpha:
                break
        return best
    best = math.inf
    for move in moves:
        best = min(best, minimax(play(state, move), depth - 1, alpha, beta, seat))
        beta = min(beta, best)
        if beta <= alpha:
            break
    return best


def best_move(state: CheckersState, depth: int, rng: random.Random) -> MovePiece | None:
    """Alpha-beta search; ties are broken at random."""
    moves = legal_moves(state)
    if not moves:
        return None
    seat = state.active_seat
    scored = [(minimax(play(state, move), depth - 1, -math.inf, math.inf, seat), move) for move in moves]
    top = max(score for score, _ in scored)
    return rng.choice([move for score, move in scored if score == top])


class CheckersGame(GameModule[CheckersState, Move]):
    """Two-player Checkers with forced captures and multi-jumps."""

    state_type = CheckersState

    def register(self) -> GameMetadata:
        return GameMetadata(
            id="checkers",
            name="Checkers",
            type=GameType.BOARD,
            min_players=2,
            max_players=2,
            has_teams=False,
            ai_supported=True,
            description="Classic checkers. Jump your opponent's pieces and reach the far side to crown a king.",
            rules={
                "objective": "Capture all opposing pieces or leave your opponent without a legal move.",
                "setup": "12 pieces each on the dark squares. Black (seat 0) moves first.",
                "gameplay": "Move diagonally forward. Captures are mandatory and multi-jumps must be completed.",
                "kings": "A piece reaching the far row becomes a king and may move backwards.",
            },
        )

    def init_state(self, players: Sequence[SeatInfo], settings: Mapping[str, Any]) -> CheckersState:
        return CheckersState(turn=Turn(0), players=tuple(players), active_seat=0, captured=(0, 0))

    def deal_or_setup(self, state: CheckersState) -> CheckersState:
        state = replace(state, board=starting_board(), active_seat=0, jump_piece=None, must_jump=False)
        return state.with_turn(Turn(0))

    def validate_move(self, state: CheckersState, seat: int, move: Move) -> tuple[bool, str | None]:
        if not isinstance(move, MovePiece):
            return False, "invalid_move"
        if not state.is_turn_of(seat):
            return False, "not_your_turn"
        (from_row, from_col), (to_row, to_col) = move.from_square, move.to_square
        if not (in_bounds(from_row, from_col) and in_bounds(to_row, to_col)):
            return False, "out_of_bounds"
        piece = state.board[from_row][from_col]
        if owner_of(piece) != seat:
            return False, "not_your_piece"
        if state.jump_piece is not None and move.from_square != state.jump_piece:
            return False, "must_continue_jump"
        if state.board[to_row][to_col] != EMPTY:
            return False, "occupied"
        d_row, d_col = to_row - from_row, to_col - from_col
        if abs(d_row) != abs(d_col) or abs(d_row) not in (1, 2):
            return False, "invalid_move"
        if not is_king(piece) and (d_row > 0) != (FORWARD[seat] > 0):
            return False, "wrong_direction"
        if abs(d_row) == 1:
            if state.jump_piece is not None:
                return False, "must_continue_jump"
            if has_capture(state.board, seat):
                return False, "must_capture"
            return True, None
        victim = owner_of(state.board[from_row + d_row // 2][from_col + d_col // 2])
        if victim is None or victim == seat:
            return False, "invalid_jump"
        return True, None

    def apply_move(self, state: CheckersState, seat: int, move: Move) -> CheckersState:
        if not isinstance(move, MovePiece):
            raise ValueError(f"Unsupported move type: {type(move)!r}")
        next_state = play(state, move)
        return replace(
            next_state,
            last_move={"seat": seat, "from": move.from_square, "to": move.to_square, "capture": move.is_jump},
        )

    def advance_turn(self, state: CheckersState) -> CheckersState:
        return state.with_turn(Turn(state.active_seat))

    def check_end_condition(self, state: CheckersState) -> EndCheck:
        to_move = state.active_seat
        if state.count_pieces(to_move) == 0:
            return EndCheck(ended=True, reason="captured_all", winners=(1 - to_move,))
        if not legal_moves(state):
            return EndCheck(ended=True, reason="no_moves", winners=(1 - to_move,))
        return EndCheck.not_ended()

    def score_round(self, state: CheckersState) -> CheckersState:
        return state

    def ai_move(self, state: CheckersState, seat: int, difficulty: Difficulty) -> Move | None:
        if state.game_over or seat != state.active_seat:
            return None
        moves = legal_moves(state)
        if not moves:
            return None
        rng = derive_rng(state.seed, "ai", state.move_count, seat)
        if difficulty is Difficulty.EXPERT:
            return best_move(state, EXPERT_DEPTH, rng)
        if difficulty is Difficulty.INTERMEDIATE and rng.randrange(100) < INTERMEDIATE_SEARCH_PERCENT:
            return best_move(state, INTERMEDIATE_DEPTH, rng)
        captures = [move for move in moves if move.is_jump]
        if captures and rng.randrange(100) < BEGINNER_CAPTURE_PERCENT:
            return rng.choice(captures)
        return rng.choice(moves)

    def get_valid_moves(self, state: CheckersState, seat: int) -> list[Move]:
        if state.game_over or seat != state.active_seat:
            return []
        return list(legal_moves(state))

    def get_public_state(self, state: CheckersState, viewer_seat: int | None) -> dict[str, Any]:
        payload = state.public_dict()
        payload["pieces"] = [state.count_pieces(seat) for seat in (0, 1)]
        return payload

    def parse_move(self, data: Mapping[str, Any]) -> Move:
        return move_from_dict(data)
