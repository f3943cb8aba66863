"""Port: database connectivity for health, diagnostics and collaborators. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol

from mediauth.infrastructure.persistence.mongo.constants import ConnectionState


class DatabaseConnection(Protocol):
    """Interface for connection lifecycle, state reporting and ping."""

    @property
    def ready(self) -> bool: ...

    @property
    def configured(self) -> bool: ...

    @property
    def database_name(self) -> str | None: ...

    def current_state(self) -> ConnectionState: ...

    async def initialize(self) -> ConnectionState: ...

    async def ping(self) -> bool: ...

    async def shutdown(self) -> None: ...
