"""Checkers package exports."""

from .checkers_game import CheckersGame, evaluate, legal_moves
from .checkers_moves import MovePiece, MoveType
from .checkers_state import CheckersState, starting_board

__all__ = ["CheckersGame", "CheckersState", "MovePiece", "MoveType", "evaluate", "legal_moves", "starting_board"]
