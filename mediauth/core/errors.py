"""Closed set of client-facing failure kinds.

Each variant is raised where the failure is detected and carries the HTTP
status it maps to. ``mediauth.middleware.error_classifier.classify_exception``
turns them into response bodies; nothing else formats error payloads.
"""
from __future__ import annotations

from typing import Iterable


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or type(self).__name__)


class ValidationFailed(AppError):
    status_code = 400

    def __init__(self, details: Iterable[str] = (), message: str = "validation failed") -> None:
        super().__init__(message)
        self.details = [str(d) for d in details] or [message]


class InvalidToken(AppError):
    status_code = 401


class TokenExpired(AppError):
    status_code = 401


class DatabaseUnavailable(AppError):
    status_code = 503


class DatabaseFailure(AppError):
    status_code = 500


class OriginRejected(AppError):
    status_code = 403

    def __init__(self, origin: str) -> None:
        super().__init__(f"origin not allowed: {origin}")
        self.origin = origin


class PayloadTooLarge(AppError):
    status_code = 413

    def __init__(self, limit: int) -> None:
        super().__init__(f"request body exceeds {limit} bytes")
        self.limit = limit


class RateLimited(AppError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__("rate limit exceeded")
        self.retry_after = retry_after


__all__ = [
    "AppError",
    "ValidationFailed",
    "InvalidToken",
    "TokenExpired",
    "DatabaseUnavailable",
    "DatabaseFailure",
    "OriginRejected",
    "PayloadTooLarge",
    "RateLimited",
]
