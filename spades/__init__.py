"""Spades package exports."""

from .spades_game import SpadesGame, TeamScore, score_team
from .spades_moves import Bid, MoveType, PlayCard
from .spades_state import NIL, TEAMS, Phase, SpadesState

__all__ = [
    "NIL",
    "TEAMS",
    "Bid",
    "MoveType",
    "Phase",
    "PlayCard",
    "SpadesGame",
    "SpadesState",
    "TeamScore",
    "score_team",
]
