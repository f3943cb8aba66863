"""Terminal pipeline stage: map any failure to a client-safe JSON response.

``classify_exception`` is the only function that shapes error bodies. The
earlier stages call it for their own rejections, the FastAPI exception
handlers call it for routing/validation errors, and
``ErrorClassifierMiddleware`` calls it for anything a handler lets escape.
"""
from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from mediauth.constants import Messages
from mediauth.core import SERVICE_NAME
from mediauth.core.errors import (
    AppError,
    DatabaseFailure,
    DatabaseUnavailable,
    InvalidToken,
    OriginRejected,
    PayloadTooLarge,
    RateLimited,
    TokenExpired,
    ValidationFailed,
)
from mediauth.infrastructure.persistence.mongo.errors import mongo_error_to_app_error


def _as_app_error(exc: BaseException) -> BaseException:
    """Driver and model-validation errors that escape a handler unwrapped."""
    if isinstance(exc, PyMongoError):
        return mongo_error_to_app_error(exc)
    if isinstance(exc, PydanticValidationError):
        return ValidationFailed(_validation_details(exc.errors()))
    return exc


def _body_for(exc: BaseException, *, debug: bool) -> tuple[int, dict[str, Any]]:
    exc = _as_app_error(exc)
    if isinstance(exc, ValidationFailed):
        return exc.status_code, {"error": Messages.VALIDATION_FAILED, "details": list(exc.details)}
    if isinstance(exc, TokenExpired):
        return exc.status_code, {"error": Messages.TOKEN_EXPIRED}
    if isinstance(exc, InvalidToken):
        return exc.status_code, {"error": Messages.INVALID_TOKEN}
    if isinstance(exc, DatabaseUnavailable):
        return exc.status_code, {
            "error": Messages.DATABASE_UNAVAILABLE,
            "details": Messages.DATABASE_UNAVAILABLE_DETAILS,
        }
    if isinstance(exc, DatabaseFailure):
        return exc.status_code, {
            "error": Messages.DATABASE_FAILURE,
            "details": Messages.DATABASE_FAILURE_DETAILS,
        }
    if isinstance(exc, OriginRejected):
        return exc.status_code, {"error": Messages.ORIGIN_REJECTED}
    if isinstance(exc, PayloadTooLarge):
        return exc.status_code, {"error": Messages.PAYLOAD_TOO_LARGE}
    if isinstance(exc, RateLimited):
        return exc.status_code, {"error": Messages.RATE_LIMITED}

    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int) or not 400 <= status_code <= 599:
        status_code = 500
    if not debug:
        return status_code, {"error": Messages.INTERNAL}
    message = exc.detail if isinstance(exc, StarletteHTTPException) else str(exc)
    return status_code, {
        "error": message or type(exc).__name__,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        "details": repr(exc),
    }


def classify_exception(exc: BaseException, *, debug: bool) -> JSONResponse:
    status_code, body = _body_for(exc, debug=debug)
    bound = logger.bind(service_name=SERVICE_NAME, event="request_failed", status_code=status_code)
    if status_code >= 500:
        bound.opt(exception=exc).error("Lỗi hệ thống: {}", exc)
    else:
        bound.warning("Lỗi hệ thống: {!r}", exc)

    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    elif isinstance(exc, StarletteHTTPException) and exc.headers:
        headers = dict(exc.headers)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def not_found_response(request: Request) -> JSONResponse:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return JSONResponse(
        status_code=404,
        content={
            "error": Messages.NOT_FOUND,
            "path": path,
            "method": request.method,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        },
    )


def _validation_details(errors: Iterable[dict[str, Any]]) -> list[str]:
    details = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        message = err.get("msg", "invalid value")
        details.append(f"{location}: {message}" if location else message)
    return details


class ErrorClassifierMiddleware(BaseHTTPMiddleware):
    """Innermost user middleware: catches whatever the router lets escape."""

    def __init__(self, app, *, debug: bool) -> None:
        super().__init__(app)
        self._debug = debug

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return classify_exception(exc, debug=self._debug)


def install_error_handlers(app: FastAPI, *, debug: bool) -> None:
    """Route FastAPI's own routing and validation errors through the classifier."""

    async def _http_exception(request: Request, exc: StarletteHTTPException) -> Response:
        # 405: the path exists under another method, which is still no route
        no_route = exc.status_code == 404 and request.scope.get("endpoint") is None
        if no_route or exc.status_code == 405:
            return not_found_response(request)
        return classify_exception(exc, debug=debug)

    async def _request_validation(request: Request, exc: RequestValidationError) -> Response:
        return classify_exception(ValidationFailed(_validation_details(exc.errors())), debug=debug)

    async def _app_error(request: Request, exc: AppError) -> Response:
        return classify_exception(exc, debug=debug)

    app.add_exception_handler(StarletteHTTPException, _http_exception)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(AppError, _app_error)
