"""Per-client sliding-window rate limiting for the /api/ surface."""
from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mediauth.constants import API_PREFIX
from mediauth.core.errors import RateLimited
from mediauth.middleware.error_classifier import classify_exception

# Prune idle clients every N checks so the key map does not grow without bound.
_PRUNE_EVERY = 1000


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the oldest counted hit leaves the window


class SlidingWindowRateLimiter:
    """Counts hits per key over a trailing window.

    All mutation happens on the event loop thread, so no locking is needed.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._checks = 0

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        self._checks += 1
        if self._checks % _PRUNE_EVERY == 0:
            self._prune(now)

        hits = self._hits.setdefault(key, deque())
        self._expire(hits, now)

        if len(hits) >= self.max_requests:
            return RateLimitDecision(False, self.max_requests, 0, self._reset_after(hits, now))

        hits.append(now)
        remaining = self.max_requests - len(hits)
        return RateLimitDecision(True, self.max_requests, remaining, self._reset_after(hits, now))

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def _expire(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _reset_after(self, hits: deque[float], now: float) -> int:
        if not hits:
            return math.ceil(self.window_seconds)
        return max(0, math.ceil(hits[0] + self.window_seconds - now))

    def _prune(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            self._expire(hits, now)
            if not hits:
                del self._hits[key]


def client_identity(scope: Scope, *, trust_proxy: bool = False) -> str:
    if trust_proxy:
        forwarded = Headers(scope=scope).get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",", 1)[0].strip()
    client = scope.get("client")
    return client[0] if client else "unknown"


class RateLimitMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        limiter: SlidingWindowRateLimiter,
        trust_proxy: bool = False,
        prefix: str = API_PREFIX,
        debug: bool = False,
    ) -> None:
        self.app = app
        self.limiter = limiter
        self.trust_proxy = trust_proxy
        self.prefix = prefix
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.prefix):
            await self.app(scope, receive, send)
            return

        decision = self.limiter.hit(client_identity(scope, trust_proxy=self.trust_proxy))
        rate_headers = {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(decision.reset_after),
        }

        if not decision.allowed:
            response = classify_exception(RateLimited(decision.reset_after), debug=self.debug)
            response.headers.update(rate_headers)
            await response(scope, receive, send)
            return

        async def send_with_rate_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).update(rate_headers)
            await send(message)

        await self.app(scope, receive, send_with_rate_headers)
