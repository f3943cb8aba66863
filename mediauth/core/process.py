"""Process-level failure hooks.

Unhandled failures in asyncio tasks are logged and the service keeps running.
An uncaught exception on any thread leaves the process in an unknown state, so
it is logged and the process exits with status 1.
"""
from __future__ import annotations

import asyncio
import os
import sys
import threading
from types import TracebackType
from typing import Any

from loguru import logger

from mediauth.core import SERVICE_NAME

FATAL_EXIT_CODE = 1


def _log_unhandled_async(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    bound = logger.bind(service_name=SERVICE_NAME, event="unhandled_rejection")
    if exc is not None:
        bound.opt(exception=exc).error("Unhandled Rejection: {}", context.get("message", exc))
    else:
        bound.error("Unhandled Rejection: {}", context.get("message"))


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.bind(service_name=SERVICE_NAME, event="uncaught_exception").opt(
        exception=(exc_type, exc, tb)
    ).critical("Uncaught Exception")
    # The interpreter exits with status 1 once the main-thread hook returns.


def _log_uncaught_in_thread(args: threading.ExceptHookArgs) -> None:
    if args.exc_type is SystemExit:
        return
    logger.bind(
        service_name=SERVICE_NAME,
        event="uncaught_exception",
        thread=args.thread.name if args.thread else None,
    ).opt(exception=(args.exc_type, args.exc_value, args.exc_traceback)).critical("Uncaught Exception")
    os._exit(FATAL_EXIT_CODE)


def install_process_hooks(loop: asyncio.AbstractEventLoop | None = None) -> None:
    if loop is not None:
        loop.set_exception_handler(_log_unhandled_async)
    sys.excepthook = _log_uncaught
    threading.excepthook = _log_uncaught_in_thread
