"""Logging setup for the engine, the server and the game packages."""

from __future__ import annotations

import logging
import sys

LOGGER_NAMES = ("engine", "server", "spades", "diamonds", "hearts", "pig", "even_at_odds", "checkers")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class _ArcadeHandler(logging.StreamHandler):
    """Marker type so repeated setup replaces rather than stacks handlers."""


def configure_logging(level: str | int = logging.INFO) -> None:
    """Attach one stderr handler to each project logger. Safe to call repeatedly."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    formatter = logging.Formatter(LOG_FORMAT)
    for name in LOGGER_NAMES:
        project_logger = logging.getLogger(name)
        for existing in [h for h in project_logger.handlers if isinstance(h, _ArcadeHandler)]:
            project_logger.removeHandler(existing)
        handler = _ArcadeHandler(sys.stderr)
        handler.setFormatter(formatter)
        project_logger.addHandler(handler)
        project_logger.setLevel(level)
        project_logger.propagate = False
