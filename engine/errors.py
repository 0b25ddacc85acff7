"""Structured exceptions used across the game engine."""

from __future__ import annotations

from typing import Any

ERROR_MESSAGES: dict[str, str] = {
    "engine_error": "Something went wrong.",
    "invalid_config": "Engine configuration is invalid.",
    "not_found": "Room not found.",
    "room_not_found": "Room not found.",
    "game_not_found": "Game not found.",
    "invalid_game": "Invalid game.",
    "no_state": "Game state not found.",
    "room_full": "Room is full.",
    "game_started": "Game has already started.",
    "already_started": "Game has already started.",
    "not_enough_players": "Not enough players to start.",
    "no_ai": "This game does not support AI players.",
    "not_in_room": "You are not in this room.",
    "not_active": "Game is not active.",
    "missing_identity": "A user id or guest token is required.",
    "invalid_move": "Invalid move.",
    "not_your_turn": "It is not your turn.",
    "game_over": "The game is already over.",
    "awaiting_gate": "Please click the button to continue.",
    "invalid_gate_action": "This action is not available right now.",
    "already_moved": "You have already made your move for this phase.",
    "stale_state": "The game state changed. Please refresh.",
    "storage_error": "Could not save the game.",
    "seat_taken": "That seat was just taken.",
    "room_code_exhausted": "Could not allocate a room code. Please try again.",
    "invalid_phase": "That action is not available in this phase.",
    "invalid_action": "Invalid action.",
    "invalid_bid": "Invalid bid.",
    "already_bid": "You have already placed your bid.",
    "invalid_card": "You do not have that card.",
    "must_follow": "You must follow suit.",
    "spades_not_broken": "Spades have not been broken yet.",
    "hearts_not_broken": "Hearts have not been broken yet.",
    "cannot_lead_joker": "You cannot lead a joker while you hold other cards.",
    "must_lead_2c": "The first trick must be led with the 2 of clubs.",
    "no_points_first": "You cannot play points on the first trick.",
    "invalid_pass": "Choose exactly three cards from your hand to pass.",
    "invalid_hold": "Roll at least once before holding.",
    "out_of_bounds": "That square is off the board.",
    "not_your_piece": "That is not your piece.",
    "must_continue_jump": "You must continue jumping with the same piece.",
    "occupied": "That square is occupied.",
    "wrong_direction": "Only kings can move backwards.",
    "must_capture": "A capture is available and must be taken.",
    "invalid_jump": "There is no opposing piece to jump.",
}


def message_for(code: str) -> str:
    """Return the human-readable message for an error code."""
    return ERROR_MESSAGES.get(code, code.replace("_", " ").capitalize() + ".")


class EngineError(Exception):
    """Base class for engine-level exceptions."""

    code = "engine_error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(message or message_for(self.code))

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "code": self.code, "message": str(self)}


class ConfigurationError(EngineError):
    """Raised when the engine or a registry is configured incorrectly."""

    code = "invalid_config"


class NotFoundError(EngineError):
    """Raised when a room, seat or stored state does not exist."""

    code = "not_found"


class GameNotFoundError(NotFoundError):
    """Raised when a game id is not registered."""

    code = "game_not_found"

    def __init__(self, game_id: str, *, code: str | None = None):
        self.game_id = game_id
        super().__init__(f"Game not found: {game_id!r}", code=code)


class RoomStateError(EngineError):
    """Raised for capacity and lifecycle rejections (room_full, already_started, ...)."""


class IllegalMoveError(EngineError):
    """Raised when a seat submits a move the game rejects."""

    code = "invalid_move"

    def __init__(self, seat: int | None, move: Any, reason: str | None = None):
        self.seat = seat
        self.move = move
        self.reason = reason or "invalid_move"
        super().__init__(message_for(self.reason), code=self.reason)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"seat": self.seat, "move": getattr(self.move, "to_dict", lambda: self.move)()})
        return payload


class StaleStateError(EngineError):
    """Raised when a write carries an etag that no longer matches the stored state."""

    code = "stale_state"

    def __init__(self, current_etag: str, current_version: int):
        self.current_etag = current_etag
        self.current_version = current_version
        super().__init__()

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"current_etag": self.current_etag, "current_version": self.current_version})
        return payload


class StorageError(EngineError):
    """Raised when the persistence layer fails."""

    code = "storage_error"
