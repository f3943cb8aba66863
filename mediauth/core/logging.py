"""Loguru sink configuration and stdlib logging interception."""
from __future__ import annotations

import inspect
import logging
import sys

from loguru import logger

from mediauth.config.settings import Settings

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level> {extra}"
)

# Libraries that log through the stdlib and should end up in the loguru sink.
_INTERCEPTED = ("uvicorn", "uvicorn.error", "uvicorn.access", "pymongo", "httpx")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the caller's depth."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(settings: Settings) -> None:
    level = settings.log_level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_FORMAT,
        backtrace=settings.is_development,
        diagnose=settings.is_development,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _INTERCEPTED:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
    # Per-request lines come from AccessLogMiddleware.
    logging.getLogger("uvicorn.access").disabled = True
    # Heartbeat chatter from the driver is only useful when debugging.
    logging.getLogger("pymongo").setLevel(logging.WARNING if level != "DEBUG" else logging.DEBUG)
