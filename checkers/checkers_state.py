"""State and piece constants for Checkers."""

from __future__ import annotations

from dataclasses import dataclass

from engine.state import GameState

BOARD_SIZE = 8
EMPTY = 0
BLACK = 1
WHITE = 2
BLACK_KING = 3
WHITE_KING = 4

Square = tuple[int, int]
Board = tuple[tuple[int, ...], ...]


def empty_board() -> Board:
    return tuple((EMPTY,) * BOARD_SIZE for _ in range(BOARD_SIZE))


def starting_board() -> Board:
    """Black (seat 0) fills the dark squares of rows 0-2, white (seat 1) rows 5-7."""
    rows = []
    for row in range(BOARD_SIZE):
        cells = []
        for col in range(BOARD_SIZE):
            if (row + col) % 2 == 1 and row < 3:
                cells.append(BLACK)
            elif (row + col) % 2 == 1 and row >= BOARD_SIZE - 3:
                cells.append(WHITE)
            else:
                cells.append(EMPTY)
        rows.append(tuple(cells))
    return tuple(rows)


def owner_of(piece: int) -> int | None:
    """Seat owning a piece: 0 for black, 1 for white, None for an empty square."""
    if piece in (BLACK, BLACK_KING):
        return 0
    if piece in (WHITE, WHITE_KING):
        return 1
    return None


def is_king(piece: int) -> bool:
    return piece in (BLACK_KING, WHITE_KING)


def _decode_square(value: object) -> Square | None:
    if value is None:
        return None
    row, col = value  # type: ignore[misc]
    return int(row), int(col)


@dataclass(frozen=True, kw_only=True)
class CheckersState(GameState):
    """Immutable Checkers state. `active_seat` is the side to move."""

    board: Board = ()
    active_seat: int = 0
    captured: tuple[int, ...] = (0, 0)
    must_jump: bool = False
    jump_piece: Square | None = None
    last_move: dict[str, object] | None = None

    field_decoders = {"jump_piece": _decode_square}

    def count_pieces(self, seat: int) -> int:
        return sum(1 for row in self.board for piece in row if owner_of(piece) == seat)
