import pytest

from mediauth.infrastructure.persistence.mongo.constants import (
    ConnectionEvent,
    ConnectionState,
    next_state,
)


def test_state_codes_match_health_contract():
    assert ConnectionState.DISCONNECTED.code == 0
    assert ConnectionState.CONNECTED.code == 1
    assert ConnectionState.CONNECTING.code == 2
    assert ConnectionState.DISCONNECTING.code == 3


@pytest.mark.parametrize(
    ("current", "event", "expected"),
    [
        (ConnectionState.DISCONNECTED, ConnectionEvent.CONNECT_STARTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionEvent.CONNECTED, ConnectionState.CONNECTED),
        (ConnectionState.CONNECTING, ConnectionEvent.FAILED, ConnectionState.DISCONNECTED),
        (ConnectionState.CONNECTED, ConnectionEvent.ERROR, ConnectionState.DISCONNECTED),
        (ConnectionState.CONNECTED, ConnectionEvent.DISCONNECTED, ConnectionState.DISCONNECTED),
        (ConnectionState.DISCONNECTED, ConnectionEvent.RECONNECTED, ConnectionState.CONNECTED),
        (ConnectionState.CONNECTED, ConnectionEvent.CLOSE_STARTED, ConnectionState.DISCONNECTING),
        (ConnectionState.DISCONNECTING, ConnectionEvent.CLOSED, ConnectionState.DISCONNECTED),
    ],
)
def test_listed_transitions(current, event, expected):
    assert next_state(current, event) == expected


@pytest.mark.parametrize(
    ("current", "event"),
    [
        (ConnectionState.DISCONNECTED, ConnectionEvent.ERROR),
        (ConnectionState.DISCONNECTING, ConnectionEvent.RECONNECTED),
        (ConnectionState.CONNECTING, ConnectionEvent.CLOSE_STARTED),
        (ConnectionState.DISCONNECTED, ConnectionEvent.FAILED),
    ],
)
def test_unlisted_transitions_are_ignored(current, event):
    assert next_state(current, event) is None
