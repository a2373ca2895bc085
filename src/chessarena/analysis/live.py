"""Aggregation of streamed MultiPV updates for the analysed position."""

from __future__ import annotations

import logging

from chessarena.analysis.models import LineEvaluation, LiveEvaluation
from chessarena.engine.search import EngineRequest, PartialEvaluation

_LOGGER = logging.getLogger(__name__)


class LiveAnalysis:
    """Keeps the latest line per MultiPV index for the current request.

    Updates for any other request are stale and ignored.
    """

    __slots__ = ("_lines_wanted", "_depth", "_request", "_lines")

    def __init__(self, lines: int = 3, depth: int = 15) -> None:
        self._lines_wanted = max(1, lines)
        self._depth = depth
        self._request: EngineRequest | None = None
        self._lines: dict[int, LineEvaluation] = {}

    @property
    def lines_wanted(self) -> int:
        return self._lines_wanted

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def request(self) -> EngineRequest | None:
        return self._request

    def begin(self, request: EngineRequest) -> None:
        self._request = request
        self._lines.clear()

    def clear(self) -> None:
        self._request = None
        self._lines.clear()

    def accept(self, update: PartialEvaluation) -> LiveEvaluation | None:
        """Fold *update* in and return the new snapshot, or ``None`` if stale."""
        request = self._request
        if request is None or update.request.request_id != request.request_id:
            _LOGGER.debug("Dropping stale analysis line for %s", update.request)
            return None
        if not 1 <= update.line_index <= self._lines_wanted:
            return None

        side = request.position.side_to_move
        self._lines[update.line_index] = LineEvaluation(
            line_index=update.line_index,
            score=update.score.for_white(side),
            depth=update.depth,
            pv=update.pv,
        )
        return self.snapshot()

    def snapshot(self) -> LiveEvaluation | None:
        if self._request is None:
            return None
        return LiveEvaluation(
            position=self._request.position,
            request_id=self._request.request_id,
            lines=tuple(self._lines[i] for i in sorted(self._lines)),
        )
