"""Explicit registry of game rule modules, keyed by game id."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .contract import GameMetadata, GameModule
from .errors import ConfigurationError, GameNotFoundError

logger = logging.getLogger(__name__)


class GameRegistry:
    """Holds one module instance per game id."""

    def __init__(self, modules: Iterable[GameModule[Any, Any]] = ()):
        self._modules: dict[str, GameModule[Any, Any]] = {}
        for module in modules:
            self.register(module)

    def register(self, module: GameModule[Any, Any]) -> GameMetadata:
        metadata = module.register()
        if metadata.id in self._modules:
            raise ConfigurationError(f"Game id registered twice: {metadata.id!r}")
        if metadata.min_players < 1 or metadata.max_players < metadata.min_players:
            raise ConfigurationError(f"Invalid player range for {metadata.id!r}.")
        self._modules[metadata.id] = module
        logger.debug("Registered game %s", metadata.id)
        return metadata

    def get(self, game_id: str) -> GameModule[Any, Any]:
        try:
            return self._modules[game_id]
        except KeyError as exc:
            raise GameNotFoundError(game_id) from exc

    def find(self, game_id: str) -> GameModule[Any, Any] | None:
        return self._modules.get(game_id)

    def exists(self, game_id: str) -> bool:
        return game_id in self._modules

    def ids(self) -> list[str]:
        return sorted(self._modules)

    def metadata(self, game_id: str) -> GameMetadata:
        return self.get(game_id).register()

    def list_metadata(self) -> list[dict[str, Any]]:
        return [self._modules[game_id].register().to_dict() for game_id in self.ids()]


def default_registry() -> GameRegistry:
    """Registry with every built-in game."""
    from checkers.checkers_game import CheckersGame
    from diamonds.diamonds_game import DiamondsGame
    from even_at_odds.even_at_odds_game import EvenAtOddsGame
    from hearts.hearts_game import HeartsGame
    from pig.pig_game import PigGame
    from spades.spades_game import SpadesGame

    return GameRegistry(
        [
            SpadesGame(),
            DiamondsGame(),
            HeartsGame(),
            PigGame(),
            EvenAtOddsGame(),
            CheckersGame(),
        ]
    )
