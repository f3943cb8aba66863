"""
Bearer token verification shared by the business collaborators.

Raises the token error variants at the point of failure so the classifier
never has to guess from exception names. Usage::

    @router.get("/me")
    async def me(claims: dict = Depends(bearer_claims)):
        return {"user_id": claims["sub"]}
"""
from __future__ import annotations

from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from mediauth.config.settings import Settings
from mediauth.core.errors import InvalidToken, TokenExpired
from mediauth.routers.utils import request_settings

# auto_error=False so a missing header maps to InvalidToken instead of FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_bearer_token(token: str, secret: str | None, *, algorithm: str = "HS256") -> dict[str, Any]:
    if not secret:
        raise InvalidToken("jwt secret not configured")
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except JWTError as e:
        raise InvalidToken(str(e)) from e


def issue_token(claims: dict[str, Any], settings: Settings) -> str:
    """Sign ``claims`` with the configured secret (used by the auth collaborator and tests)."""
    if not settings.jwt_secret:
        raise InvalidToken("jwt secret not configured")
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def bearer_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    if credentials is None:
        raise InvalidToken("missing bearer token")
    settings = request_settings(request)
    return decode_bearer_token(credentials.credentials, settings.jwt_secret, algorithm=settings.jwt_algorithm)
