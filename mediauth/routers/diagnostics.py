"""Diagnostic endpoints.

``/api/test-db`` and ``/api/test-env`` report configuration presence only and
are mounted when ``DIAGNOSTICS_ENABLED`` (default: development only).
``/api/debug/config`` is development-only regardless.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from loguru import logger

from mediauth.constants import Messages
from mediauth.core import SERVICE_NAME
from mediauth.routers.utils import database_state, request_settings, utc_timestamp
from mediauth.schemas.health import DatabaseDiagnostics, DebugConfig, EnvironmentDiagnostics

diagnostics_router = APIRouter(prefix="/api", tags=["Diagnostics"])
debug_router = APIRouter(prefix="/api/debug", tags=["Diagnostics"])


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).warning("")


def _presence(value: str | None) -> str:
    return Messages.CONFIGURED if value else Messages.NOT_CONFIGURED


@diagnostics_router.get(
    "/test-db",
    summary="Database connectivity diagnostic",
    response_model=DatabaseDiagnostics,
    response_model_exclude_none=True,
)
async def test_db(request: Request) -> DatabaseDiagnostics:
    settings = request_settings(request)
    try:
        state = database_state(request)
    except Exception as e:
        _log("test_db_failed", error=str(e))
        return DatabaseDiagnostics(success=False, error=str(e), dbState="error")
    return DatabaseDiagnostics(
        success=True,
        dbState=state.value,
        dbStateCode=state.code,
        environment=settings.environment,
        dbUri=_presence(settings.db_uri),
        timestamp=utc_timestamp(),
    )


@diagnostics_router.get(
    "/test-env",
    summary="Environment configuration diagnostic",
    description="Secrets are reported as Configured/Not configured, never by value.",
    response_model=EnvironmentDiagnostics,
)
async def test_env(request: Request) -> EnvironmentDiagnostics:
    settings = request_settings(request)
    return EnvironmentDiagnostics(
        nodeEnv=settings.environment,
        port=settings.port,
        dbUriConfigured=bool(settings.db_uri),
        corsOrigin=settings.cors_origin,
        jwtSecret=_presence(settings.jwt_secret),
        superAdmin=settings.super_admin_email or Messages.NOT_CONFIGURED,
    )


@debug_router.get("/config", summary="Development configuration dump", response_model=DebugConfig)
async def debug_config(request: Request) -> DebugConfig:
    settings = request_settings(request)
    return DebugConfig(
        environment=settings.environment,
        port=settings.port,
        nodeEnv=settings.environment,
        corsOrigin=settings.cors_origin,
    )
