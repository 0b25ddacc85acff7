"""Game state engine: contract, registry, rooms, optimistic-concurrency store and AI turns."""

from .ai import AITurnProcessor, thinking_delay_ms
from .config import EngineConfig
from .contract import Difficulty, EndCheck, GameMetadata, GameModule, GameType
from .errors import (
    ConfigurationError,
    EngineError,
    GameNotFoundError,
    IllegalMoveError,
    NotFoundError,
    RoomStateError,
    StaleStateError,
    StorageError,
)
from .events import EventLog, EventType, RoomEvent
from .move import BeginGame, Continue, Move
from .records import Player, PlayerIdentity, Room, RoomStatus
from .registry import GameRegistry, default_registry
from .rooms import RoomManager
from .state import GameState, SeatInfo
from .storage import MemoryStorage, Storage
from .store import GameStateStore, StoredState
from .turn import AwaitingGate, AwaitingResolution, Simultaneous, Turn, TurnState

__all__ = [
    "AITurnProcessor",
    "AwaitingGate",
    "AwaitingResolution",
    "BeginGame",
    "ConfigurationError",
    "Continue",
    "Difficulty",
    "EndCheck",
    "EngineConfig",
    "EngineError",
    "EventLog",
    "EventType",
    "GameMetadata",
    "GameModule",
    "GameNotFoundError",
    "GameRegistry",
    "GameState",
    "GameStateStore",
    "GameType",
    "IllegalMoveError",
    "MemoryStorage",
    "Move",
    "NotFoundError",
    "Player",
    "PlayerIdentity",
    "Room",
    "RoomEvent",
    "RoomManager",
    "RoomStateError",
    "RoomStatus",
    "SeatInfo",
    "Simultaneous",
    "StaleStateError",
    "StorageError",
    "Storage",
    "StoredState",
    "Turn",
    "TurnState",
    "default_registry",
    "thinking_delay_ms",
]
