from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from fastapi import APIRouter, Depends, FastAPI, Request
from loguru import logger
from pydantic import BaseModel
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from mediauth.config.settings import Settings
from mediauth.core.errors import InvalidToken, TokenExpired, ValidationFailed
from mediauth.infrastructure.persistence.mongo.constants import ConnectionState
from mediauth.infrastructure.persistence.mongo.errors import database_errors
from mediauth.main import create_app
from mediauth.services.auth_tokens import bearer_claims

TEST_JWT_SECRET = "test-secret"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "environment": "production",
        "db_uri": None,
        "jwt_secret": TEST_JWT_SECRET,
        "startup_probe_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeDatabase:
    """Implements DatabaseConnection for tests. Full protocol so lifespan connect/close work."""

    def __init__(
        self,
        state: ConnectionState = ConnectionState.DISCONNECTED,
        *,
        initialize_to: ConnectionState | None = None,
        ping_ok: bool = True,
    ) -> None:
        self._state = state
        self._initialize_to = initialize_to
        self._ping_ok = ping_ok
        self.initialize_calls = 0
        self.shutdown_calls = 0
        self.closed_while_connected = False

    @property
    def ready(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def configured(self) -> bool:
        return self._initialize_to is not None

    @property
    def database_name(self) -> str | None:
        return "test" if self.ready else None

    def current_state(self) -> ConnectionState:
        return self._state

    def set_state(self, state: ConnectionState) -> None:
        self._state = state

    async def initialize(self) -> ConnectionState:
        self.initialize_calls += 1
        if self._initialize_to is not None:
            self._state = self._initialize_to
        return self._state

    async def ping(self) -> bool:
        return self._ping_ok

    async def shutdown(self) -> None:
        self.shutdown_calls += 1
        if self._state == ConnectionState.CONNECTED:
            self.closed_while_connected = True
        self._state = ConnectionState.DISCONNECTED


class HandlerCalls:
    """Records which collaborator handlers actually ran."""

    def __init__(self) -> None:
        self.names: list[str] = []

    def record(self, name: str) -> None:
        self.names.append(name)


class TeapotError(Exception):
    status_code = 418


class PatientRecord(BaseModel):
    name: str
    age: int


def build_patients_router(calls: HandlerCalls) -> APIRouter:
    router = APIRouter()

    @router.get("/ok")
    async def ok() -> dict:
        calls.record("ok")
        return {"ok": True}

    @router.post("/echo")
    async def echo(payload: dict) -> dict:
        calls.record("echo")
        return payload

    @router.get("/validation")
    async def validation() -> dict:
        calls.record("validation")
        raise ValidationFailed(["X"])

    @router.get("/invalid-token")
    async def invalid_token() -> dict:
        raise InvalidToken()

    @router.get("/expired-token")
    async def expired_token() -> dict:
        raise TokenExpired()

    @router.get("/db-down")
    async def db_down() -> dict:
        with database_errors():
            raise ServerSelectionTimeoutError("no servers available")

    @router.get("/db-error")
    async def db_error() -> dict:
        with database_errors():
            raise OperationFailure("secret internals: collection patients")

    @router.get("/db-down-unwrapped")
    async def db_down_unwrapped() -> dict:
        raise ServerSelectionTimeoutError("no servers available")

    @router.get("/db-error-unwrapped")
    async def db_error_unwrapped() -> dict:
        raise OperationFailure("secret internals: collection patients")

    @router.get("/invalid-record")
    async def invalid_record() -> dict:
        calls.record("invalid-record")
        return PatientRecord.model_validate({"name": "An", "age": "x"}).model_dump()

    @router.post("/raw")
    async def raw(request: Request) -> dict:
        body = await request.body()
        calls.record("raw")
        return {"length": len(body)}

    @router.get("/boom")
    async def boom() -> dict:
        raise RuntimeError("kaboom")

    @router.get("/teapot")
    async def teapot() -> dict:
        raise TeapotError("short and stout")

    @router.get("/big")
    async def big() -> dict:
        return {"payload": "x" * 5000}

    return router


def build_auth_router(calls: HandlerCalls) -> APIRouter:
    router = APIRouter()

    @router.get("/me")
    async def me(claims: dict = Depends(bearer_claims)) -> dict:
        calls.record("me")
        return {"sub": claims.get("sub")}

    return router


def build_app(
    settings: Settings | None = None,
    *,
    database: FakeDatabase | None = None,
    calls: HandlerCalls | None = None,
) -> FastAPI:
    calls = calls if calls is not None else HandlerCalls()
    app = create_app(
        settings or make_settings(),
        database=database if database is not None else FakeDatabase(),
        collaborators={
            "patients": build_patients_router(calls),
            "auth": build_auth_router(calls),
        },
    )
    app.state.calls = calls
    return app


@pytest.fixture()
def calls() -> HandlerCalls:
    return HandlerCalls()


@pytest.fixture()
def test_app(calls: HandlerCalls) -> FastAPI:
    return build_app(calls=calls)


@pytest.fixture()
def log_records():
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


def heartbeat(address: tuple[str, int] = ("db.local", 27017), reply: Exception | None = None):
    return SimpleNamespace(connection_id=address, reply=reply)


def description_change(
    was_known: bool,
    now_known: bool,
    address: tuple[str, int] = ("db.local", 27017),
):
    return SimpleNamespace(
        server_address=address,
        previous_description=SimpleNamespace(is_server_type_known=was_known),
        new_description=SimpleNamespace(is_server_type_known=now_known),
    )
