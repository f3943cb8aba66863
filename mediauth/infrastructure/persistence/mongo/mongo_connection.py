import asyncio
import inspect
from typing import Any, Callable

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ServerSelectionTimeoutError

from mediauth.config.settings import Settings
from mediauth.core import SERVICE_NAME
from mediauth.core.backoff import exponential_backoff
from mediauth.core.errors import DatabaseUnavailable
from mediauth.infrastructure.persistence.mongo.constants import (
    ConnectionEvent,
    ConnectionState,
    next_state,
)
from mediauth.infrastructure.persistence.mongo.events import ConnectivityListener

DEFAULT_DATABASE_NAME = "test"

_SELECTION_HINTS = (
    "the cluster's network access list does not allow this host",
    "the database user lacks permission on the target database",
    "the connection string is wrong",
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class MongoConnection:
    """Owns MongoDB connectivity for the process.

    Startup makes a bounded connection attempt and never raises: without
    ``DB_URI``, or when the attempt fails, the API keeps serving in degraded
    mode with the state left at ``disconnected``. Once connected, driver
    monitoring events drive the state through the table in ``constants``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client_factory: Callable[..., AsyncIOMotorClient] = AsyncIOMotorClient,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._state = ConnectionState.DISCONNECTED
        self._client: AsyncIOMotorClient | None = None
        self._listener = ConnectivityListener()

    def current_state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def configured(self) -> bool:
        return bool(self._settings.db_uri)

    @property
    def client(self) -> AsyncIOMotorClient:
        if self._client is None or not self.ready:
            raise DatabaseUnavailable("db_not_connected")
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """Default database named in DB_URI (``test`` when the URI names none)."""
        return self.client.get_default_database(DEFAULT_DATABASE_NAME)

    @property
    def database_name(self) -> str | None:
        if self._client is None:
            return None
        return self._client.get_default_database(DEFAULT_DATABASE_NAME).name

    async def initialize(self) -> ConnectionState:
        uri = self._settings.db_uri
        if not uri:
            logger.bind(service_name=SERVICE_NAME, event="db_uri_missing").warning(
                "DB_URI not set, skipping MongoDB connection"
            )
            self._apply(ConnectionEvent.CLOSED)
            return self._state

        self._apply(ConnectionEvent.CONNECT_STARTED)
        attempt = 0
        backoff = exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.db_connect_attempts,
        )
        async for _delay in backoff:
            attempt += 1
            _log("db_connect_attempt", attempt=attempt)
            client: AsyncIOMotorClient | None = None
            try:
                client = self._client_factory(
                    uri,
                    maxPoolSize=self._settings.db_max_pool_size,
                    serverSelectionTimeoutMS=self._settings.db_server_selection_timeout_ms,
                    socketTimeoutMS=self._settings.db_socket_timeout_ms,
                    event_listeners=[self._listener],
                )
                await client.admin.command("ping")
            except Exception as exc:
                self._log_connect_failure(exc, attempt)
                if client is not None:
                    await self._close_client(client)
                continue

            self._client = client
            self._apply(ConnectionEvent.CONNECTED)
            self._listener.attach(asyncio.get_running_loop(), self._on_driver_event)
            _log("db_connected", database=self.database_name, state=self._state.value)
            return self._state

        self._apply(ConnectionEvent.FAILED)
        logger.bind(service_name=SERVICE_NAME, event="db_degraded_mode").warning(
            "API will run without a database connection"
        )
        return self._state

    async def ping(self) -> bool:
        """Return True if the database responds to ping; False if not connected or any error."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except Exception:
            return False

    async def shutdown(self) -> None:
        """Force-close the client if connected. Safe to call more than once."""
        self._listener.detach()
        if self._state == ConnectionState.CONNECTED and self._client is not None:
            self._apply(ConnectionEvent.CLOSE_STARTED)
            await self._close_client(self._client)
            self._client = None
            _log("db_closed")
        self._apply(ConnectionEvent.CLOSED)

    def _on_driver_event(self, event: ConnectionEvent, error: BaseException | None = None) -> None:
        bound = logger.bind(service_name=SERVICE_NAME, event=f"db_{event.value}")
        if event == ConnectionEvent.ERROR:
            bound.error("MongoDB connection error: {}", error)
        elif event == ConnectionEvent.DISCONNECTED:
            bound.warning("MongoDB disconnected")
        elif event == ConnectionEvent.RECONNECTED:
            bound.info("MongoDB reconnected")
        else:
            bound.info("MongoDB {}", event.value)
        self._apply(event)

    def _apply(self, event: ConnectionEvent) -> None:
        target = next_state(self._state, event)
        if target is None:
            logger.debug("ignoring {} while {}", event.value, self._state.value)
            return
        self._state = target

    def _log_connect_failure(self, exc: BaseException, attempt: int) -> None:
        bound = logger.bind(
            service_name=SERVICE_NAME,
            event="db_connect_failed",
            attempt=attempt,
            error_name=type(exc).__name__,
            error_code=getattr(exc, "code", None),
        )
        bound.warning("MongoDB connection failed: {}", exc)
        if isinstance(exc, ServerSelectionTimeoutError):
            for hint in _SELECTION_HINTS:
                bound.warning("possible cause: {}", hint)

    @staticmethod
    async def _close_client(client: AsyncIOMotorClient) -> None:
        res = client.close()
        if inspect.isawaitable(res):
            await res
