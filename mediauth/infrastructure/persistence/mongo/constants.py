from enum import Enum


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"

    @property
    def code(self) -> int:
        """Numeric ready-state reported by /health as ``databaseCode``."""
        return _STATE_CODES[self]


_STATE_CODES = {
    ConnectionState.DISCONNECTED: 0,
    ConnectionState.CONNECTED: 1,
    ConnectionState.CONNECTING: 2,
    ConnectionState.DISCONNECTING: 3,
}


class ConnectionEvent(str, Enum):
    CONNECT_STARTED = "connect_started"
    CONNECTED = "connected"
    RECONNECTED = "reconnected"
    FAILED = "failed"
    ERROR = "error"
    DISCONNECTED = "disconnected"
    CLOSE_STARTED = "close_started"
    CLOSED = "closed"


# (current state, event) -> next state. Pairs not listed are ignored.
TRANSITIONS: dict[tuple[ConnectionState, ConnectionEvent], ConnectionState] = {
    (ConnectionState.DISCONNECTED, ConnectionEvent.CONNECT_STARTED): ConnectionState.CONNECTING,
    (ConnectionState.CONNECTING, ConnectionEvent.CONNECTED): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.FAILED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.ERROR): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.DISCONNECTED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.CONNECTED): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.RECONNECTED): ConnectionState.CONNECTED,
    (ConnectionState.DISCONNECTED, ConnectionEvent.CONNECTED): ConnectionState.CONNECTED,
    (ConnectionState.DISCONNECTED, ConnectionEvent.RECONNECTED): ConnectionState.CONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.CLOSE_STARTED): ConnectionState.DISCONNECTING,
    (ConnectionState.DISCONNECTING, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTED, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
    (ConnectionState.DISCONNECTED, ConnectionEvent.CLOSED): ConnectionState.DISCONNECTED,
}


def next_state(current: ConnectionState, event: ConnectionEvent) -> ConnectionState | None:
    return TRANSITIONS.get((current, event))
