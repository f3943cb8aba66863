"""
Composition root: single place where concrete implementations are wired.

Builds settings, the database lifecycle manager, the origin policy and the
rate limiter, and owns the database lifecycle. The lifespan stores the result
on ``app.state.deps``; handlers reach the database only through it.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from mediauth.config.settings import Settings
from mediauth.core import SERVICE_NAME
from mediauth.infrastructure.persistence.factory import create_database_connection
from mediauth.infrastructure.persistence.mongo.constants import ConnectionState
from mediauth.middleware.origin_policy import OriginPolicy
from mediauth.middleware.rate_limit import SlidingWindowRateLimiter
from mediauth.ports.database_connection import DatabaseConnection


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class AppDependencies:
    """Holds wired dependencies and their lifecycle. Built only in composition root."""

    def __init__(
        self,
        *,
        settings: Settings,
        database: DatabaseConnection,
        origin_policy: OriginPolicy,
        rate_limiter: SlidingWindowRateLimiter,
    ) -> None:
        self._settings = settings
        self._database = database
        self._origin_policy = origin_policy
        self._rate_limiter = rate_limiter

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def database(self) -> DatabaseConnection:
        return self._database

    @property
    def origin_policy(self) -> OriginPolicy:
        return self._origin_policy

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        return self._rate_limiter

    async def connect(self) -> ConnectionState:
        """Initialize the database; never raises for connectivity problems."""
        if self._origin_policy.shadowed_origins:
            logger.bind(service_name=SERVICE_NAME, event="cors_wildcard").warning(
                "CORS allow-list contains '*'; explicit origins {} never decide",
                list(self._origin_policy.shadowed_origins),
            )
        return await self._database.initialize()

    async def close(self) -> None:
        await self._database.shutdown()


def create_app_dependencies(
    settings: Settings | None = None,
    *,
    database: DatabaseConnection | None = None,
) -> AppDependencies:
    """
    Composition root: build all app dependencies in one place.
    Caller owns lifecycle (connect/close). ``database`` overrides the
    configured backend, which is how tests inject a fake.
    """
    _settings = settings or Settings()
    return AppDependencies(
        settings=_settings,
        database=database or create_database_connection(_settings),
        origin_policy=OriginPolicy(_settings.allowed_origins),
        rate_limiter=SlidingWindowRateLimiter(
            max_requests=_settings.rate_limit_ceiling,
            window_seconds=_settings.rate_limit_window_seconds,
        ),
    )
