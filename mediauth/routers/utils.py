from __future__ import annotations

import resource
import sys
import time
from datetime import datetime, timezone

from fastapi import Request

from mediauth.config.settings import Settings
from mediauth.infrastructure.persistence.mongo.constants import ConnectionState
from mediauth.ports.database_connection import DatabaseConnection

_PROCESS_STARTED = time.monotonic()


def utc_timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def uptime_seconds() -> float:
    return round(time.monotonic() - _PROCESS_STARTED, 3)


def max_rss_bytes() -> int:
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports kilobytes, macOS reports bytes.
    return rss if sys.platform == "darwin" else rss * 1024


def request_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else Settings()


def request_database(request: Request) -> DatabaseConnection | None:
    return getattr(request.app.state, "database", None)


def database_state(request: Request) -> ConnectionState:
    """Last known connection state; ``disconnected`` before the lifespan has wired one."""
    database = request_database(request)
    if database is None:
        return ConnectionState.DISCONNECTED
    return database.current_state()


__all__ = [
    "utc_timestamp",
    "uptime_seconds",
    "max_rss_bytes",
    "request_settings",
    "request_database",
    "database_state",
]
