"""Translate driver exceptions into the API's error variants at the call site."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from mediauth.core.errors import AppError, DatabaseFailure, DatabaseUnavailable

_UNREACHABLE = (ServerSelectionTimeoutError, NetworkTimeout, AutoReconnect, ConnectionFailure)


def mongo_error_to_app_error(exc: PyMongoError) -> AppError:
    if isinstance(exc, _UNREACHABLE):
        return DatabaseUnavailable(str(exc))
    return DatabaseFailure(str(exc))


@contextmanager
def database_errors() -> Iterator[None]:
    """Wrap a block of driver calls so failures surface as classified errors.

    Usage::

        with database_errors():
            doc = await collection.find_one({"_id": patient_id})
    """
    try:
        yield
    except PyMongoError as exc:
        raise mongo_error_to_app_error(exc) from exc
