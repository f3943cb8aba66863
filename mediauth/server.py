"""Process entry point: settings, logging, process hooks and the uvicorn listener.

Shutdown path on SIGTERM/SIGINT: uvicorn stops accepting connections, the
lifespan closes the database handle, then the process exits with status 0.
"""
import asyncio
import signal
import sys
from types import FrameType
from typing import Any

import uvicorn
from fastapi import FastAPI
from loguru import logger
from pydantic import ValidationError

from mediauth.config.settings import Settings
from mediauth.core import SERVICE_NAME
from mediauth.core.logging import configure_logging
from mediauth.core.process import FATAL_EXIT_CODE, install_process_hooks
from mediauth.main import create_app

GRACEFUL_EXIT_CODE = 0
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class MediAuthServer(uvicorn.Server):
    """uvicorn server that records which signal started the shutdown."""

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if not self.should_exit:
            _log("shutdown_signal", signal=signal.Signals(sig).name)
        super().handle_exit(sig, frame)


def _exit_gracefully(signum: int, frame: FrameType | None) -> None:
    # uvicorn re-raises the captured signal once its own shutdown is done;
    # by then the listener is closed and the database handle released.
    raise SystemExit(GRACEFUL_EXIT_CODE)


def build_server(settings: Settings, app: FastAPI | None = None) -> MediAuthServer:
    config = uvicorn.Config(
        app or create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        lifespan="on",
        log_config=None,
        access_log=False,
        server_header=False,
    )
    return MediAuthServer(config)


async def serve(settings: Settings, app: FastAPI | None = None) -> None:
    install_process_hooks(asyncio.get_running_loop())
    server = build_server(settings, app)
    await server.serve()
    if not server.started:
        logger.bind(service_name=SERVICE_NAME, event="startup_failed").error("server did not start")
        raise SystemExit(FATAL_EXIT_CODE)


def main() -> None:
    try:
        settings = Settings()
    except ValidationError as e:
        logger.bind(service_name=SERVICE_NAME, event="invalid_settings").error("{}", e)
        sys.exit(FATAL_EXIT_CODE)

    configure_logging(settings)
    _log(
        "server_starting",
        environment=settings.environment,
        port=settings.port,
        database_uri="configured" if settings.db_uri else "not configured",
    )
    for sig in HANDLED_SIGNALS:
        signal.signal(sig, _exit_gracefully)

    try:
        asyncio.run(serve(settings))
    except Exception as e:
        logger.bind(service_name=SERVICE_NAME, event="startup_failed").exception("server failed: {}", e)
        sys.exit(FATAL_EXIT_CODE)
    finally:
        # also reached when a signal handler raises SystemExit inside asyncio.run
        _log("server_stopped")


if __name__ == "__main__":
    main()
