"""Qt bridge to a long-running engine process speaking a line protocol."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from PyQt6.QtCore import QObject, QProcess, pyqtSignal, pyqtSlot

_LOGGER = logging.getLogger(__name__)


class EngineProcess(QObject):
    """Non-blocking wrapper around :class:`QProcess`.

    Output is re-assembled into complete lines and delivered on the
    thread that owns this object; nothing here ever waits on the child.
    """

    line_received = pyqtSignal(str)
    failed = pyqtSignal(str)
    exited = pyqtSignal(int)

    def __init__(
        self,
        program: str,
        arguments: Sequence[str] = (),
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._program = program
        self._arguments = list(arguments)
        self._buffer = ""
        self._stopping = False
        self._process = QProcess(self)
        self._process.readyReadStandardOutput.connect(self._on_ready_read)
        self._process.errorOccurred.connect(self._on_error)
        self._process.finished.connect(self._on_finished)

    @property
    def program(self) -> str:
        return self._program

    @property
    def is_running(self) -> bool:
        return self._process.state() != QProcess.ProcessState.NotRunning

    def start(self) -> None:
        if self.is_running:
            return
        self._stopping = False
        self._buffer = ""
        _LOGGER.debug("Starting engine %s %s", self._program, self._arguments)
        self._process.start(self._program, self._arguments)

    def write_line(self, line: str) -> None:
        if not self.is_running:
            self.failed.emit(f"Engine {self._program!r} is not running")
            return
        _LOGGER.debug("> %s", line)
        self._process.write(f"{line}\n".encode())

    def stop(self, timeout_ms: int = 1000) -> None:
        """Ask the engine to quit, then kill it if it does not comply."""
        if not self.is_running:
            return
        self._stopping = True
        self._process.write(b"quit\n")
        self._process.closeWriteChannel()
        if not self._process.waitForFinished(timeout_ms):
            self._process.kill()
            self._process.waitForFinished(timeout_ms)

    # ── QProcess slots ───────────────────────────────────────────────────

    @pyqtSlot()
    def _on_ready_read(self) -> None:
        chunk = bytes(self._process.readAllStandardOutput().data())
        self._buffer += chunk.decode("utf-8", errors="replace")
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            line = line.rstrip("\r")
            if line:
                _LOGGER.debug("< %s", line)
                self.line_received.emit(line)

    @pyqtSlot(QProcess.ProcessError)
    def _on_error(self, error: QProcess.ProcessError) -> None:
        if self._stopping:
            return
        message = f"{self._program}: {self._process.errorString()} ({error.name})"
        _LOGGER.warning("Engine process error: %s", message)
        self.failed.emit(message)

    @pyqtSlot(int, QProcess.ExitStatus)
    def _on_finished(self, exit_code: int, status: QProcess.ExitStatus) -> None:
        if not self._stopping and status == QProcess.ExitStatus.NormalExit:
            self.failed.emit(f"{self._program} exited unexpectedly (code {exit_code})")
        self._stopping = False
        self.exited.emit(exit_code)
