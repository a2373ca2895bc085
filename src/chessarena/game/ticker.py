"""Sources of the one-second clock tick."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from PyQt6.QtCore import QObject, QTimer

TickCallback = Callable[[], None]


class ClockTicker(Protocol):
    """Something that calls the session back once per clock unit."""

    def bind(self, callback: TickCallback) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    @property
    def is_active(self) -> bool: ...


class QtClockTicker:
    """Periodic :class:`QTimer` tick on the owning thread's event loop.

    Ticks are delivered between other events, never in the middle of a
    move being committed.
    """

    __slots__ = ("_timer", "_callback", "__weakref__")

    def __init__(self, interval_ms: int = 1000, parent: QObject | None = None) -> None:
        self._timer = QTimer(parent)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: TickCallback | None = None

    def bind(self, callback: TickCallback) -> None:
        self._callback = callback

    def start(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self) -> None:
        if self._callback is not None:
            self._callback()


class ManualTicker:
    """Ticker advanced explicitly by the host, e.g. a headless driver."""

    __slots__ = ("_callback", "_active")

    def __init__(self) -> None:
        self._callback: TickCallback | None = None
        self._active = False

    def bind(self, callback: TickCallback) -> None:
        self._callback = callback

    def start(self) -> None:
        self._active = True

    def stop(self) -> None:
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def advance(self, ticks: int = 1) -> None:
        """Deliver *ticks* ticks, stopping early if the ticker is stopped."""
        for _ in range(ticks):
            if not self._active or self._callback is None:
                return
            self._callback()
