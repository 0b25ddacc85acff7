"""Pydantic request schemas for the room and game API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from engine.records import PlayerIdentity


class IdentityFields(BaseModel):
    """Caller identity: a logged-in `user_id` or a `guest_token`, plus the browser's `client_id`."""

    user_id: int | None = None
    guest_token: str | None = None
    client_id: str | None = None
    display_name: str | None = None

    def identity(self) -> PlayerIdentity:
        return PlayerIdentity(
            user_id=self.user_id,
            guest_token=self.guest_token,
            client_id=self.client_id,
            display_name=self.display_name,
        )


class CreateRoomRequest(IdentityFields):
    """Request body for creating a room; an identified creator takes the first seat."""

    game_id: str
    settings: dict[str, Any] = Field(default_factory=dict)


class JoinRequest(IdentityFields):
    """Request body for joining or leaving a room."""


class AddAIRequest(BaseModel):
    difficulty: str = "beginner"


class StartRequest(IdentityFields):
    """Request body for starting a game. The RNG seed is always chosen by the server."""


class MoveRequest(IdentityFields):
    """Request body for submitting a move. `etag` is the last state the client saw."""

    move: dict[str, Any]
    etag: str | None = None


class ForfeitRequest(IdentityFields):
    etag: str | None = None
