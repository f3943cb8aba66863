"""Origin validation (CORS).

Requests without an ``Origin`` header are never blocked; browsers always send
one, other clients usually don't. A listed origin, or any origin when the
allow-list holds ``*``, is echoed back with credentials allowed. Anything else
is rejected here, before routing.
"""
from __future__ import annotations

from typing import Any, Iterable

from loguru import logger
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mediauth.constants import ALLOWED_HEADERS, ALLOWED_METHODS
from mediauth.core import SERVICE_NAME
from mediauth.core.errors import OriginRejected
from mediauth.middleware.error_classifier import classify_exception

WILDCARD = "*"
PREFLIGHT_MAX_AGE = 600


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).warning("")


class OriginPolicy:
    def __init__(self, allowed_origins: Iterable[str]) -> None:
        self.allowed_origins = tuple(allowed_origins)
        self.allow_any = WILDCARD in self.allowed_origins

    @property
    def shadowed_origins(self) -> tuple[str, ...]:
        """Explicit entries that never decide anything because ``*`` is present."""
        if not self.allow_any:
            return ()
        return tuple(o for o in self.allowed_origins if o != WILDCARD)

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return True
        return self.allow_any or origin in self.allowed_origins


class OriginPolicyMiddleware:
    def __init__(self, app: ASGIApp, *, policy: OriginPolicy, debug: bool = False) -> None:
        self.app = app
        self.policy = policy
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        if not origin:
            await self.app(scope, receive, send)
            return

        if not self.policy.is_allowed(origin):
            _log("cors_blocked", origin=origin, path=scope.get("path"))
            response = classify_exception(OriginRejected(origin), debug=self.debug)
            await response(scope, receive, send)
            return

        if scope["method"] == "OPTIONS" and "access-control-request-method" in headers:
            await self._preflight(origin)(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers.update(self._cors_headers(origin))
                response_headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)

    def _cors_headers(self, origin: str) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }

    def _preflight(self, origin: str) -> Response:
        headers = self._cors_headers(origin)
        headers.update(
            {
                "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
                "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
                "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
                "Vary": "Origin",
            }
        )
        return Response(status_code=204, headers=headers)
