"""Per-request access log lines, skipping the health probe."""
from __future__ import annotations

import time

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mediauth.constants import HEALTH_PATH
from mediauth.core import SERVICE_NAME

DEV_FORMAT = "dev"
COMBINED_FORMAT = "combined"


class AccessLogMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        log_format: str = COMBINED_FORMAT,
        skip_paths: tuple[str, ...] = (HEALTH_PATH,),
    ) -> None:
        self.app = app
        self.log_format = log_format
        self.skip_paths = skip_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.skip_paths:
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 500
        length = "-"

        async def send_and_record(message: Message) -> None:
            nonlocal status_code, length
            if message["type"] == "http.response.start":
                status_code = message["status"]
                length = Headers(raw=message.get("headers", [])).get("content-length", "-")
            await send(message)

        try:
            await self.app(scope, receive, send_and_record)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._write(scope, status_code, length, elapsed_ms)

    def _write(self, scope: Scope, status_code: int, length: str, elapsed_ms: float) -> None:
        path = scope["path"]
        if scope.get("query_string"):
            path = f"{path}?{scope['query_string'].decode('latin-1')}"
        bound = logger.bind(service_name=SERVICE_NAME, event="http_access", status_code=status_code)

        if self.log_format == DEV_FORMAT:
            bound.info("{} {} {} {:.3f} ms - {}", scope["method"], path, status_code, elapsed_ms, length)
            return

        headers = Headers(scope=scope)
        client = scope.get("client")
        bound.info(
            '{} "{} {} HTTP/{}" {} {} "{}" "{}" {:.3f} ms',
            client[0] if client else "-",
            scope["method"],
            path,
            scope.get("http_version", "1.1"),
            status_code,
            length,
            headers.get("referer", "-"),
            headers.get("user-agent", "-"),
            elapsed_ms,
        )
