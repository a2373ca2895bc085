"""Tests for ClockPair and the tick sources."""

import pytest

from chessarena.core.enums import Color
from chessarena.game.clock import ClockPair, TimeExpired, format_clock, parse_clock
from chessarena.game.interfaces import TimeControl
from chessarena.game.ticker import ManualTicker, QtClockTicker


def _running(seconds: int = 300, side: Color = Color.WHITE) -> ClockPair:
    clock = ClockPair(TimeControl(seconds))
    clock.start(side)
    return clock


class TestClockPair:
    def test_initial(self) -> None:
        clock = ClockPair(TimeControl.blitz_5m())
        assert clock.remaining(Color.WHITE) == 300
        assert clock.remaining(Color.BLACK) == 300
        assert not clock.is_running
        assert clock.active_side is None

    def test_unlimited_rejected(self) -> None:
        with pytest.raises(ValueError):
            ClockPair(TimeControl.unlimited())

    def test_tick_only_active_side(self) -> None:
        clock = _running()
        assert clock.tick() is None
        assert clock.remaining(Color.WHITE) == 299
        assert clock.remaining(Color.BLACK) == 300

    def test_switch_turn(self) -> None:
        clock = _running()
        clock.tick()
        clock.switch_turn()
        clock.tick()
        assert clock.active_side == Color.BLACK
        assert clock.remaining(Color.WHITE) == 299
        assert clock.remaining(Color.BLACK) == 299

    def test_paused_clock_does_not_tick(self) -> None:
        clock = _running()
        clock.pause()
        assert clock.tick() is None
        assert clock.remaining(Color.WHITE) == 300
        clock.resume()
        clock.tick()
        assert clock.remaining(Color.WHITE) == 299

    def test_expiry_saturates_at_zero(self) -> None:
        clock = _running(seconds=2)
        assert clock.tick() is None
        assert clock.tick() == TimeExpired(Color.WHITE)
        assert clock.tick() == TimeExpired(Color.WHITE)
        assert clock.remaining(Color.WHITE) == 0
        assert clock.is_flag_fallen(Color.WHITE)

    def test_snapshot_restore(self) -> None:
        clock = _running()
        clock.tick()
        snap = clock.snapshot()
        other = ClockPair(TimeControl(300))
        other.restore(snap)
        assert other.snapshot() == snap


class TestClockFormat:
    @pytest.mark.parametrize(
        ("seconds", "text"), [(300, "5:00"), (59, "0:59"), (0, "0:00"), (-3, "0:00")]
    )
    def test_format(self, seconds: int, text: str) -> None:
        assert format_clock(seconds) == text

    def test_parse(self) -> None:
        assert parse_clock("4:07") == 247
        assert parse_clock(12) == 12
        assert parse_clock("", default=42) == 42

    def test_parse_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_clock("soon")


class TestTickers:
    def test_manual_ticker(self) -> None:
        ticks: list[int] = []
        ticker = ManualTicker()
        ticker.bind(lambda: ticks.append(1))
        ticker.advance(3)
        assert ticks == []
        ticker.start()
        ticker.advance(3)
        assert len(ticks) == 3

    def test_manual_ticker_stops_midway(self) -> None:
        ticker = ManualTicker()
        count = 0

        def on_tick() -> None:
            nonlocal count
            count += 1
            if count == 2:
                ticker.stop()

        ticker.bind(on_tick)
        ticker.start()
        ticker.advance(10)
        assert count == 2

    def test_qt_ticker_start_stop(self) -> None:
        ticker = QtClockTicker(interval_ms=1000)
        ticker.bind(lambda: None)
        ticker.start()
        assert ticker.is_active
        ticker.stop()
        assert not ticker.is_active
