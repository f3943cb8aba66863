"""Hard ceiling on decoded request bodies (JSON and URL-encoded forms).

Bodies of those types are read fully before the route runs, so an oversized
payload is rejected here and never reaches a handler. Other content types
(uploads, webhooks with their own framing) stream through untouched.
"""
from __future__ import annotations

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mediauth.core.errors import PayloadTooLarge
from mediauth.middleware.error_classifier import classify_exception

LIMITED_CONTENT_TYPES = ("application/json", "application/x-www-form-urlencoded")


def _is_limited(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in LIMITED_CONTENT_TYPES or media_type.endswith("+json")


class BodyLimitMiddleware:
    def __init__(self, app: ASGIApp, *, max_bytes: int, debug: bool = False) -> None:
        self.app = app
        self.max_bytes = max_bytes
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if not _is_limited(headers.get("content-type", "")):
            await self.app(scope, receive, send)
            return

        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        chunks: list[bytes] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = classify_exception(PayloadTooLarge(self.max_bytes), debug=self.debug)
        await response(scope, receive, send)
