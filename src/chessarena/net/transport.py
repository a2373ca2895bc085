"""Message transport consumed by the peer-sync layer."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from chessarena.net.protocol import Payload

EventHandler = Callable[[Payload], None]


class Transport(Protocol):
    """Ordered, reliable, bidirectional named-event channel.

    Handlers run on the owner's dispatch context, one message at a time,
    in the order the server sent them.
    """

    @property
    def client_id(self) -> str: ...

    @property
    def is_open(self) -> bool: ...

    def emit(self, event: str, payload: Payload) -> None: ...

    def subscribe(self, event: str, handler: EventHandler) -> None: ...

    def close(self) -> None: ...
