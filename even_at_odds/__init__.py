"""Even at Odds package exports."""

from .even_at_odds_game import EvenAtOddsGame
from .even_at_odds_moves import MoveType, PlaceBid
from .even_at_odds_state import Coin, EvenAtOddsState, Parity, Phase

__all__ = ["Coin", "EvenAtOddsGame", "EvenAtOddsState", "MoveType", "Parity", "Phase", "PlaceBid"]
