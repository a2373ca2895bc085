"""In-process transport: clients and a :class:`RoomServer` in one loop.

All traffic goes through a single FIFO, so messages are delivered in
exactly the order they were sent.  Payloads are round-tripped through
JSON to behave like they crossed a wire.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Callable
from itertools import count

from chessarena.net.protocol import Payload
from chessarena.net.server import RoomServer
from chessarena.net.transport import EventHandler

_LOGGER = logging.getLogger(__name__)

_TO_SERVER = "server"
_TO_CLIENT = "client"


class LoopbackTransport:
    """Client end of a :class:`LoopbackHub`."""

    __slots__ = ("_hub", "_client_id", "_handlers", "_open")

    def __init__(self, hub: LoopbackHub, client_id: str) -> None:
        self._hub = hub
        self._client_id = client_id
        self._handlers: dict[str, list[EventHandler]] = {}
        self._open = True

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def is_open(self) -> bool:
        return self._open

    def emit(self, event: str, payload: Payload) -> None:
        if not self._open:
            return
        self._hub.post(_TO_SERVER, self._client_id, event, payload)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def close(self) -> None:
        if self._open:
            self._open = False
            self._hub.disconnect(self._client_id)

    def deliver(self, event: str, payload: Payload) -> None:
        if not self._open:
            return
        for handler in list(self._handlers.get(event, ())):
            handler(payload)


class LoopbackHub:
    """Routes client events to the server and server events to clients.

    Nothing is delivered until :meth:`flush` runs; hosts call it from
    their event loop (``schedule`` is invoked whenever work is queued,
    e.g. ``lambda: QTimer.singleShot(0, hub.flush)``).
    """

    def __init__(
        self,
        server: RoomServer | None = None,
        *,
        schedule: Callable[[], None] | None = None,
    ) -> None:
        self.server = server or RoomServer()
        self.server.attach(self.send)
        self._schedule = schedule
        self._clients: dict[str, LoopbackTransport] = {}
        self._queue: deque[tuple[str, str, str, Payload]] = deque()
        self._ids = count(1)

    def connect(self, client_id: str | None = None) -> LoopbackTransport:
        client_id = client_id or f"client-{next(self._ids)}"
        if client_id in self._clients:
            raise ValueError(f"Client id already connected: {client_id}")
        transport = LoopbackTransport(self, client_id)
        self._clients[client_id] = transport
        return transport

    def disconnect(self, client_id: str) -> None:
        self._clients.pop(client_id, None)
        self.server.disconnect(client_id)

    def send(self, client_id: str, event: str, payload: Payload) -> None:
        """Server-side delivery callback."""
        self.post(_TO_CLIENT, client_id, event, payload)

    def post(self, direction: str, client_id: str, event: str, payload: Payload) -> None:
        wire = json.loads(json.dumps(payload))
        self._queue.append((direction, client_id, event, wire))
        if self._schedule is not None:
            self._schedule()

    def flush(self) -> int:
        """Deliver queued messages, including any they trigger; return count."""
        delivered = 0
        while self._queue:
            direction, client_id, event, payload = self._queue.popleft()
            delivered += 1
            if direction == _TO_SERVER:
                self.server.handle(client_id, event, payload)
                continue
            transport = self._clients.get(client_id)
            if transport is None:
                _LOGGER.debug("Dropping %s for disconnected %s", event, client_id)
                continue
            transport.deliver(event, payload)
        return delivered

    @property
    def pending(self) -> int:
        return len(self._queue)
