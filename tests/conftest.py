"""Shared pytest fixtures used across the test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from PyQt6.QtCore import QCoreApplication, QObject, pyqtSignal


@pytest.fixture(scope="session", autouse=True)
def qapp() -> Iterator[object]:
    """Provide a singleton QCoreApplication for signal and timer tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class FakeEngineProcess(QObject):
    """Scripted stand-in for :class:`EngineProcess`.

    Records every line written; tests push engine output with :meth:`reply`.
    """

    line_received = pyqtSignal(str)
    failed = pyqtSignal(str)

    def __init__(self, *, fail_on_start: bool = False) -> None:
        super().__init__()
        self.written: list[str] = []
        self.start_count = 0
        self.fail_on_start = fail_on_start
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        self.start_count += 1
        if self.fail_on_start:
            self.failed.emit("engine binary not found")
            return
        self._running = True

    def write_line(self, line: str) -> None:
        if not self._running:
            self.failed.emit("engine is not running")
            return
        self.written.append(line)

    def stop(self, timeout_ms: int = 1000) -> None:
        self._running = False

    def crash(self, message: str = "engine crashed") -> None:
        self._running = False
        self.failed.emit(message)

    def reply(self, *lines: str) -> None:
        for line in lines:
            self.line_received.emit(line)

    def commands(self, prefix: str) -> list[str]:
        return [line for line in self.written if line.startswith(prefix)]


@pytest.fixture
def engine_process() -> FakeEngineProcess:
    return FakeEngineProcess()


@pytest.fixture
def broken_engine_process() -> FakeEngineProcess:
    return FakeEngineProcess(fail_on_start=True)
