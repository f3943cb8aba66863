from mediauth.infrastructure.persistence.mongo.constants import ConnectionEvent, ConnectionState
from mediauth.infrastructure.persistence.mongo.errors import database_errors, mongo_error_to_app_error
from mediauth.infrastructure.persistence.mongo.mongo_connection import MongoConnection

__all__ = [
    "ConnectionEvent",
    "ConnectionState",
    "MongoConnection",
    "database_errors",
    "mongo_error_to_app_error",
]
