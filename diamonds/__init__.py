"""Diamonds package exports."""

from .diamonds_game import SOFT_MOON_BONUS, SOFT_MOON_THRESHOLD, DiamondsGame
from .diamonds_state import TEAMS, DiamondsState, Phase

__all__ = ["SOFT_MOON_BONUS", "SOFT_MOON_THRESHOLD", "TEAMS", "DiamondsGame", "DiamondsState", "Phase"]
