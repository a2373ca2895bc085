"""Asynchronous request/response channel to one search process."""

from __future__ import annotations

import logging
from collections import deque
from typing import Protocol

from PyQt6.QtCore import QObject, pyqtSignal

from chessarena.core.position import Position
from chessarena.engine import uci
from chessarena.engine.search import (
    BestMove,
    EngineOptions,
    EngineRequest,
    NoMove,
    PartialEvaluation,
)
from chessarena.errors import EngineFault

_LOGGER = logging.getLogger(__name__)


class LineSignal(Protocol):
    def connect(self, slot: object) -> object: ...


class IEngineProcess(Protocol):
    """What the channel needs from the process host."""

    line_received: LineSignal
    failed: LineSignal

    @property
    def is_running(self) -> bool: ...

    def start(self) -> None: ...

    def write_line(self, line: str) -> None: ...

    def stop(self, timeout_ms: int = 1000) -> None: ...


class EngineChannel(QObject):
    """Issues searches and attributes every answer to its request.

    UCI answers carry no request identity, but the engine answers every
    ``go`` with exactly one ``bestmove``, in order.  The channel keeps
    the searches it has started in a FIFO and attributes ``info`` and
    ``bestmove`` lines to the oldest unfinished one.

    Cancelling is best effort: ``stop`` makes the engine finish early,
    and the late ``bestmove`` for the stopped search is still emitted,
    tagged with its (now stale) request.  Consumers compare the request
    against what they currently expect.
    """

    partial_evaluation = pyqtSignal(object)  # PartialEvaluation
    best_move = pyqtSignal(object)  # BestMove
    no_move = pyqtSignal(object)  # NoMove
    fault = pyqtSignal(object, str)  # EngineRequest | None, message

    def __init__(self, process: IEngineProcess, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._process = process
        self._options = EngineOptions()
        self._position: Position | None = None
        self._in_flight: deque[EngineRequest] = deque()
        self._cancelled: set[int] = set()
        self._next_request_id = 0
        self._is_started = False
        process.line_received.connect(self._on_line)
        process.failed.connect(self._on_process_failed)

    # ── Lifecycle ────────────────────────────────────────────────────────

    @property
    def is_started(self) -> bool:
        return self._is_started

    @property
    def options(self) -> EngineOptions:
        return self._options

    def start(self) -> None:
        """Launch the process and perform the UCI handshake."""
        if self._is_started and self._process.is_running:
            return
        self._process.start()
        self._is_started = True
        self._process.write_line("uci")
        self._write_options()
        self._process.write_line("isready")

    def shutdown(self) -> None:
        self.cancel()
        self._in_flight.clear()
        self._cancelled.clear()
        self._position = None
        if self._is_started:
            self._process.stop()
        self._is_started = False

    # ── Protocol ─────────────────────────────────────────────────────────

    def configure(self, options: EngineOptions) -> None:
        """Apply options to subsequent searches."""
        self._options = options
        if self._is_started:
            self._write_options()

    def set_position(self, position: Position) -> None:
        self._position = position
        if self._is_started:
            self.cancel()
            self._process.write_line(uci.position_command(position))

    def search(self, depth: int) -> EngineRequest:
        """Search the last position given to :meth:`set_position`.

        Any search still running is cancelled first, so at most one
        request is live at a time.
        """
        if self._position is None:
            raise EngineFault("search() called before set_position()")
        if not self._is_started:
            self.start()
            self._process.write_line(uci.position_command(self._position))
        self.cancel()

        self._next_request_id += 1
        request = EngineRequest(
            request_id=self._next_request_id,
            position=self._position,
            depth=self._options.effective_depth(depth),
            multipv=self._options.multipv,
        )
        self._in_flight.append(request)
        self._process.write_line(uci.go_command(request.depth))
        return request

    def request(self, position: Position, depth: int) -> EngineRequest:
        """Shorthand for :meth:`set_position` followed by :meth:`search`."""
        self.set_position(position)
        return self.search(depth)

    def cancel(self) -> None:
        """Stop the running search, if any.  Its answer may still arrive."""
        live = [r for r in self._in_flight if r.request_id not in self._cancelled]
        if not live:
            return
        for request in live:
            self._cancelled.add(request.request_id)
        if self._process.is_running:
            self._process.write_line("stop")

    @property
    def current_request(self) -> EngineRequest | None:
        """Newest request that was neither answered nor cancelled."""
        for request in reversed(self._in_flight):
            if request.request_id not in self._cancelled:
                return request
        return None

    @property
    def pending_count(self) -> int:
        return len(self._in_flight)

    # ── Inbound ──────────────────────────────────────────────────────────

    def _on_line(self, line: str) -> None:
        try:
            parsed = uci.parse_line(line)
        except EngineFault as exc:
            request = self._finish_head()
            self.fault.emit(request, str(exc))
            return

        if parsed is None or isinstance(parsed, uci.Handshake):
            return
        if not self._in_flight:
            _LOGGER.debug("Dropping unsolicited engine output: %s", line)
            return

        if isinstance(parsed, uci.InfoLine):
            self.partial_evaluation.emit(
                PartialEvaluation(
                    request=self._in_flight[0],
                    line_index=parsed.line_index,
                    depth=parsed.depth,
                    score=parsed.score,
                    pv=parsed.pv,
                )
            )
            return

        request = self._finish_head()
        assert request is not None
        if parsed.move is None:
            self.no_move.emit(NoMove(request))
        else:
            self.best_move.emit(BestMove(request, parsed.move, parsed.ponder))

    def _on_process_failed(self, message: str) -> None:
        request = self.current_request
        self._in_flight.clear()
        self._cancelled.clear()
        self._is_started = False
        self.fault.emit(request, message)

    # ── Internal ─────────────────────────────────────────────────────────

    def _finish_head(self) -> EngineRequest | None:
        if not self._in_flight:
            return None
        request = self._in_flight.popleft()
        self._cancelled.discard(request.request_id)
        return request

    def _write_options(self) -> None:
        self._process.write_line(uci.setoption_command("MultiPV", self._options.multipv))
        if self._options.skill_level is not None:
            self._process.write_line(
                uci.setoption_command("Skill Level", self._options.skill_level)
            )
