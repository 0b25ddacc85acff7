"""Engine configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigurationError

DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer; received {raw!r}.") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0; received {value}.")
    return value


@dataclass(frozen=True)
class EngineConfig:
    """Timeouts, storage location and server settings."""

    inactivity_timeout_seconds: int = 480
    completed_grace_seconds: int = 120
    hard_cap_seconds: int = 10800
    disconnect_grace_seconds: int = 90
    move_timeout_seconds: int = 180
    db_path: str | None = None
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        origins = env.get("ARCADE_CORS_ORIGINS")
        return cls(
            inactivity_timeout_seconds=_int_setting(env, "ARCADE_INACTIVITY_TIMEOUT_SECONDS", 480),
            completed_grace_seconds=_int_setting(env, "ARCADE_COMPLETED_GRACE_SECONDS", 120),
            hard_cap_seconds=_int_setting(env, "ARCADE_HARD_CAP_SECONDS", 10800),
            disconnect_grace_seconds=_int_setting(env, "ARCADE_DISCONNECT_GRACE_SECONDS", 90),
            move_timeout_seconds=_int_setting(env, "ARCADE_MOVE_TIMEOUT_SECONDS", 180),
            db_path=env.get("ARCADE_DB_PATH") or None,
            log_level=(env.get("ARCADE_LOG_LEVEL") or "INFO").upper(),
            cors_origins=tuple(item.strip() for item in origins.split(",") if item.strip())
            if origins
            else DEFAULT_CORS_ORIGINS,
        )
