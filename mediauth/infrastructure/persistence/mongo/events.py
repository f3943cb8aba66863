"""Bridge pymongo monitoring events onto the event loop.

Pymongo emits heartbeat and server events from its monitor threads. The
listener never touches connection state itself: it posts a ``ConnectionEvent``
to the loop with ``call_soon_threadsafe`` so the owning ``MongoConnection``
stays the only writer.

Health is tracked per member. On a replica set the deployment counts as lost
only once no member answers, and as back when the first member recovers.
"""
from __future__ import annotations

import asyncio
import threading
from typing import Callable

from pymongo import monitoring

from mediauth.infrastructure.persistence.mongo.constants import ConnectionEvent

EventSink = Callable[[ConnectionEvent, "BaseException | None"], None]


class ConnectivityListener(monitoring.ServerHeartbeatListener, monitoring.ServerListener):
    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._sink: EventSink | None = None
        # member address -> last heartbeat outcome. Down means no member is healthy.
        self._healthy: dict[object, bool] = {}
        self._lock = threading.Lock()

    def attach(self, loop: asyncio.AbstractEventLoop, sink: EventSink) -> None:
        self._loop = loop
        self._sink = sink

    def detach(self) -> None:
        self._sink = None
        self._loop = None

    @property
    def attached(self) -> bool:
        return self._sink is not None

    def _post(self, event: ConnectionEvent, error: BaseException | None = None) -> None:
        loop, sink = self._loop, self._sink
        if loop is None or sink is None:
            return
        try:
            loop.call_soon_threadsafe(sink, event, error)
        except RuntimeError:
            # loop already closed during interpreter shutdown
            self.detach()

    def _mark(self, address: object, healthy: bool) -> tuple[bool, bool]:
        """Record one member's health; return (any healthy before, any healthy after)."""
        with self._lock:
            before = any(self._healthy.values())
            self._healthy[address] = healthy
            return before, any(self._healthy.values())

    # ServerHeartbeatListener

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        with self._lock:
            before = any(self._healthy.values())
            lost = False in self._healthy.values()
            self._healthy[event.connection_id] = True
        if not before:
            self._post(ConnectionEvent.RECONNECTED if lost else ConnectionEvent.CONNECTED)

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        before, after = self._mark(event.connection_id, False)
        if before and not after:
            self._post(ConnectionEvent.ERROR, event.reply)

    # ServerListener

    def opened(self, event: monitoring.ServerOpeningEvent) -> None:
        pass

    def description_changed(self, event: monitoring.ServerDescriptionChangedEvent) -> None:
        was_known = event.previous_description.is_server_type_known
        if was_known and not event.new_description.is_server_type_known:
            before, after = self._mark(event.server_address, False)
            if before and not after:
                self._post(ConnectionEvent.DISCONNECTED)

    def closed(self, event: monitoring.ServerClosedEvent) -> None:
        with self._lock:
            self._healthy.pop(event.server_address, None)
