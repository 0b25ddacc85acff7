"""Hearts package exports."""

from .hearts_game import HeartsGame, card_points
from .hearts_moves import MoveType, PassCards, PlayCard
from .hearts_state import HeartsState, PassDirection, Phase

__all__ = ["HeartsGame", "HeartsState", "MoveType", "PassCards", "PassDirection", "Phase", "PlayCard", "card_points"]
