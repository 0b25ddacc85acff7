"""Pig package exports."""

from .pig_game import PigGame
from .pig_moves import Hold, MoveType, Roll
from .pig_state import DEFAULT_TARGET_SCORE, PigState

__all__ = ["DEFAULT_TARGET_SCORE", "Hold", "MoveType", "PigGame", "PigState", "Roll"]
