"""FastAPI server exposing rooms, polling and moves for the game arcade."""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from engine.config import EngineConfig
from engine.errors import (
    EngineError,
    NotFoundError,
    RoomStateError,
    StaleStateError,
    StorageError,
)
from engine.logging_config import configure_logging
from engine.records import PlayerIdentity
from engine.serialize import json_dumps
from server.schemas import (
    AddAIRequest,
    CreateRoomRequest,
    ForfeitRequest,
    JoinRequest,
    MoveRequest,
    StartRequest,
)
from server.service import build_service

logger = logging.getLogger(__name__)

config = EngineConfig.from_env()
configure_logging(config.log_level)

app = FastAPI(title="Game Arcade API", version="0.1.0")
service = build_service(config)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for(exc: EngineError) -> int:
    """HTTP status for an engine error."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (StaleStateError, RoomStateError)):
        return 409
    if isinstance(exc, StorageError):
        return 500
    return 400


def _raise_http(exc: EngineError) -> NoReturn:
    status = status_for(exc)
    if status >= 500:
        logger.error("Storage failure: %s", exc)
    raise HTTPException(status_code=status, detail=exc.to_dict()) from exc


def _identity(
    user_id: int | None,
    guest_token: str | None,
    client_id: str | None,
    display_name: str | None = None,
) -> PlayerIdentity:
    return PlayerIdentity(user_id=user_id, guest_token=guest_token, client_id=client_id, display_name=display_name)


@app.get("/api/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.get("/api/games")
def list_games() -> list[dict[str, Any]]:
    return service.list_games()


@app.post("/api/room")
def create_room(request: CreateRoomRequest) -> dict:
    """Create a room; an identified caller is seated immediately."""
    try:
        return service.create_room(request.game_id, request.settings, request.identity())
    except EngineError as exc:
        _raise_http(exc)


@app.get("/api/room/{code}")
def get_room(code: str) -> dict:
    try:
        return service.room(code)
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/room/{code}/join")
def join_room(code: str, request: JoinRequest) -> dict:
    try:
        return service.join(code, request.identity())
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/room/{code}/ai")
def add_ai(code: str, request: AddAIRequest) -> dict:
    try:
        return service.add_ai(code, request.difficulty)
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/room/{code}/leave")
def leave_room(code: str, request: JoinRequest) -> dict:
    try:
        return service.leave(code, request.identity())
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/room/{code}/start")
def start_game(code: str, request: StartRequest) -> dict:
    try:
        return service.start(code, request.identity())
    except EngineError as exc:
        _raise_http(exc)


@app.get("/api/room/{code}/events", response_model=None)
def get_events(code: str, format: str = Query(default="array")) -> Any:
    """Return the room's event history as an array (default) or JSONL text."""
    try:
        events = service.room_events(code)
    except EngineError as exc:
        _raise_http(exc)

    if format == "jsonl":
        text = "\n".join(json_dumps(event) for event in events)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return events


@app.get("/api/game/state/{code}")
def poll_state(
    code: str,
    etag: str | None = Query(default=None),
    user_id: int | None = Query(default=None),
    guest_token: str | None = Query(default=None),
    client_id: str | None = Query(default=None),
) -> dict:
    """Poll for changes. Returns `changed: false` when `etag` is still current."""
    try:
        return service.poll(code, _identity(user_id, guest_token, client_id), etag=etag)
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/game/move/{code}")
def submit_move(code: str, request: MoveRequest) -> dict:
    try:
        return service.move(code, request.identity(), request.move, etag=request.etag)
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/game/forfeit/{code}")
def forfeit(code: str, request: ForfeitRequest) -> dict:
    try:
        return service.forfeit(code, request.identity(), etag=request.etag)
    except EngineError as exc:
        _raise_http(exc)


@app.get("/api/rejoin")
def rejoin(client_id: str = Query(...), game_id: str = Query(...)) -> dict:
    try:
        return service.rejoin(client_id, game_id)
    except EngineError as exc:
        _raise_http(exc)


@app.post("/api/maintenance/cleanup")
def cleanup() -> dict[str, int]:
    """Expire idle rooms and free abandoned lobby seats."""
    return service.cleanup()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, reload=True)
