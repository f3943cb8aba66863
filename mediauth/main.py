import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any, Mapping

from fastapi import APIRouter, FastAPI
from loguru import logger

from mediauth.composition import create_app_dependencies
from mediauth.config.settings import Settings
from mediauth.constants import COLLABORATOR_PREFIXES, Messages
from mediauth.core import SERVICE_NAME
from mediauth.middleware import install_pipeline
from mediauth.ports.database_connection import DatabaseConnection
from mediauth.routers.diagnostics import debug_router, diagnostics_router
from mediauth.routers.health import health_router
from mediauth.services.startup_probe import probe_health


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def create_app(
    settings: Settings | None = None,
    *,
    database: DatabaseConnection | None = None,
    collaborators: Mapping[str, APIRouter] | None = None,
) -> FastAPI:
    """Build the API. ``collaborators`` maps a name (e.g. ``patients``) to the router mounted at /api/<name>."""
    deps = create_app_dependencies(settings, database=database)
    settings = deps.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log("api_starting", environment=settings.environment, port=settings.port)
        probe_task: asyncio.Task | None = None
        try:
            state = await deps.connect()
            _log(
                "api_ready",
                environment=settings.environment,
                port=settings.port,
                database=state.value,
                super_admin=settings.super_admin_email or Messages.NOT_CONFIGURED,
            )
            if settings.startup_probe_enabled:
                probe_task = asyncio.create_task(probe_health(settings))
            yield
        finally:
            _log("api_stopping")
            if probe_task is not None and not probe_task.done():
                probe_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await probe_task
            await deps.close()
            _log("api_stopped")

    app = FastAPI(
        title="MediAuth Healthcare API",
        version=settings.app_version,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.settings = settings
    app.state.database = deps.database

    install_pipeline(
        app,
        settings=settings,
        origin_policy=deps.origin_policy,
        rate_limiter=deps.rate_limiter,
    )

    app.include_router(health_router)
    if settings.diagnostics_exposed:
        app.include_router(diagnostics_router)
    if settings.is_development:
        app.include_router(debug_router)

    for name, router in (collaborators or {}).items():
        if name not in COLLABORATOR_PREFIXES:
            logger.bind(service_name=SERVICE_NAME, event="collaborator_unknown", name=name).warning("")
        app.include_router(router, prefix=f"/api/{name}")

    return app
