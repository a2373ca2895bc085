"""Dual countdown clock measured in whole seconds."""

from __future__ import annotations

from dataclasses import dataclass

from chessarena.core.enums import Color
from chessarena.game.interfaces import TimeControl


@dataclass(frozen=True, slots=True)
class ClockSnapshot:
    """Serializable clock state (sync messages, restore after reload)."""

    white_remaining: int
    black_remaining: int
    active_side: Color | None
    is_running: bool

    def remaining(self, side: Color) -> int:
        return self.white_remaining if side == Color.WHITE else self.black_remaining


@dataclass(frozen=True, slots=True)
class TimeExpired:
    """Signal returned by :meth:`ClockPair.tick` when a flag falls."""

    side: Color


class ClockPair:
    """Two countdown timers of which at most one runs at a time.

    Time only moves through :meth:`tick`, one unit per call; whoever
    drives the ticks decides the cadence.  Ticks lost while the process
    was suspended are simply never delivered, so remaining time can only
    go down, never jump.
    """

    __slots__ = ("_remaining", "_active_side", "_running")

    def __init__(self, time_control: TimeControl) -> None:
        if time_control.initial_seconds is None:
            raise ValueError("ClockPair needs a finite time control")
        seconds = time_control.initial_seconds
        self._remaining: dict[Color, int] = {Color.WHITE: seconds, Color.BLACK: seconds}
        self._active_side: Color | None = None
        self._running = False

    # ── Control ──────────────────────────────────────────────────────────

    def start(self, side: Color) -> None:
        self._active_side = side
        self._running = True

    def tick(self) -> TimeExpired | None:
        """Take one second off the active side; report a fallen flag."""
        side = self._active_side
        if not self._running or side is None:
            return None
        if self._remaining[side] > 0:
            self._remaining[side] -= 1
        if self._remaining[side] == 0:
            return TimeExpired(side)
        return None

    def switch_turn(self) -> None:
        """Hand the move to the other side without touching remaining time."""
        if self._active_side is not None:
            self._active_side = self._active_side.opposite

    def set_active(self, side: Color) -> None:
        self._active_side = side

    def pause(self) -> None:
        self._running = False

    def resume(self) -> None:
        if self._active_side is not None:
            self._running = True

    # ── Queries ──────────────────────────────────────────────────────────

    def remaining(self, side: Color) -> int:
        return self._remaining[side]

    def is_flag_fallen(self, side: Color) -> bool:
        return self._remaining[side] == 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def active_side(self) -> Color | None:
        return self._active_side

    def set_remaining(self, side: Color, seconds: int) -> None:
        """Override remaining time (adopting a peer's clock, tests)."""
        self._remaining[side] = max(0, int(seconds))

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot(
            white_remaining=self._remaining[Color.WHITE],
            black_remaining=self._remaining[Color.BLACK],
            active_side=self._active_side,
            is_running=self._running,
        )

    def restore(self, snapshot: ClockSnapshot) -> None:
        self._remaining[Color.WHITE] = max(0, snapshot.white_remaining)
        self._remaining[Color.BLACK] = max(0, snapshot.black_remaining)
        self._active_side = snapshot.active_side
        self._running = snapshot.is_running and snapshot.active_side is not None


def format_clock(seconds: int) -> str:
    """``m:ss`` display string."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def parse_clock(text: str | int | None, default: int = 600) -> int:
    """Inverse of :func:`format_clock`; plain integers pass through."""
    if text is None or text == "":
        return default
    if isinstance(text, int):
        return max(0, text)
    minutes, _, secs = text.partition(":")
    try:
        total = int(minutes) * 60 + int(secs or 0)
    except ValueError as exc:
        raise ValueError(f"Bad clock value: {text!r}") from exc
    return max(0, total)
