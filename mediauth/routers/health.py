import platform

from fastapi import APIRouter, Request

from mediauth.constants import Messages
from mediauth.infrastructure.persistence.mongo.constants import ConnectionState
from mediauth.routers.utils import (
    database_state,
    max_rss_bytes,
    request_settings,
    uptime_seconds,
    utc_timestamp,
)
from mediauth.schemas.health import BannerResponse, HealthResponse, MemoryUsage

health_router = APIRouter(tags=["Health"])


@health_router.get(
    "/health",
    summary="Health check",
    description="Always 200 while the process is up. `database` reports the last known MongoDB connection state, so degraded mode is visible without failing the probe.",
    response_model=HealthResponse,
)
async def health(request: Request) -> HealthResponse:
    settings = request_settings(request)
    state = database_state(request)
    return HealthResponse(
        timestamp=utc_timestamp(),
        uptime=uptime_seconds(),
        environment=settings.environment,
        version=settings.app_version,
        database=state.value,
        databaseCode=state.code,
        memory=MemoryUsage(maxRss=max_rss_bytes()),
        pythonVersion=platform.python_version(),
    )


@health_router.get(
    "/",
    summary="Service banner",
    response_model=BannerResponse,
)
async def banner(request: Request) -> BannerResponse:
    settings = request_settings(request)
    connected = database_state(request) == ConnectionState.CONNECTED
    return BannerResponse(
        message=Messages.BANNER,
        version=settings.app_version,
        timestamp=utc_timestamp(),
        environment=settings.environment,
        database="connected" if connected else "disconnected",
        endpoints={
            "health": "/health",
            "testDb": "/api/test-db",
            "testEnv": "/api/test-env",
            "auth": "/api/auth",
            "users": "/api/users",
            "docs": "/api/docs",
        },
    )
