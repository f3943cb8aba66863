"""Request pipeline.

Stages, outermost first::

    security headers -> origin policy -> gzip -> body limit -> rate limit
        -> access log -> error classifier -> router (+ not-found fallback)

Cheap rejections happen before any work is done; every failure shape comes
from ``error_classifier.classify_exception``.
"""
from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.gzip import GZipMiddleware

from mediauth.config.settings import Settings
from mediauth.middleware.access_log import COMBINED_FORMAT, DEV_FORMAT, AccessLogMiddleware
from mediauth.middleware.body_limit import BodyLimitMiddleware
from mediauth.middleware.error_classifier import ErrorClassifierMiddleware, install_error_handlers
from mediauth.middleware.origin_policy import OriginPolicy, OriginPolicyMiddleware
from mediauth.middleware.rate_limit import RateLimitMiddleware, SlidingWindowRateLimiter
from mediauth.middleware.security_headers import SecurityHeadersMiddleware

GZIP_MINIMUM_SIZE = 1024


def install_pipeline(
    app: FastAPI,
    *,
    settings: Settings,
    origin_policy: OriginPolicy,
    rate_limiter: SlidingWindowRateLimiter,
) -> None:
    debug = settings.is_development
    install_error_handlers(app, debug=debug)

    # add_middleware wraps the current stack, so register innermost first.
    app.add_middleware(ErrorClassifierMiddleware, debug=debug)
    app.add_middleware(AccessLogMiddleware, log_format=DEV_FORMAT if debug else COMBINED_FORMAT)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=rate_limiter,
        trust_proxy=settings.trust_proxy,
        debug=debug,
    )
    app.add_middleware(BodyLimitMiddleware, max_bytes=settings.body_limit_bytes, debug=debug)
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)
    app.add_middleware(OriginPolicyMiddleware, policy=origin_policy, debug=debug)
    app.add_middleware(SecurityHeadersMiddleware)


__all__ = [
    "install_pipeline",
    "OriginPolicy",
    "SlidingWindowRateLimiter",
]
