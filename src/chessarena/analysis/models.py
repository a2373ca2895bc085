"""Display-ready evaluation models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from chessarena.core.position import Position
from chessarena.engine.search import Score

_DECISIVE_CP = 500
_CLEAR_CP = 100


class Verdict(StrEnum):
    """One-sentence summary of the best line, white-centric."""

    WHITE_DECISIVE = "White is winning decisively!"
    WHITE_CLEAR = "White has a clear advantage."
    BALANCED = "The position is balanced."
    BLACK_CLEAR = "Black has a clear advantage."
    BLACK_DECISIVE = "Black is winning decisively!"


def verdict_for(white_cp: int) -> Verdict:
    if white_cp > _DECISIVE_CP:
        return Verdict.WHITE_DECISIVE
    if white_cp < -_DECISIVE_CP:
        return Verdict.BLACK_DECISIVE
    if white_cp > _CLEAR_CP:
        return Verdict.WHITE_CLEAR
    if white_cp < -_CLEAR_CP:
        return Verdict.BLACK_CLEAR
    return Verdict.BALANCED


def format_score(score: Score) -> str:
    """``+0.35`` / ``-1.20`` / ``0.00`` for centipawns, ``M3`` for mates."""
    if score.mate is not None:
        return f"M{abs(score.mate)}"
    assert score.cp is not None
    text = f"{score.cp / 100:.2f}"
    return f"+{text}" if score.cp > 0 else text


@dataclass(slots=True, frozen=True)
class LineEvaluation:
    """One principal variation, already in white's perspective."""

    line_index: int
    score: Score
    depth: int | None
    pv: tuple[str, ...]

    @property
    def display(self) -> str:
        return format_score(self.score)

    @property
    def white_cp(self) -> int:
        return self.score.as_centipawns()


@dataclass(slots=True, frozen=True)
class LiveEvaluation:
    """Snapshot of all lines currently known for one analysed position."""

    position: Position
    request_id: int
    lines: tuple[LineEvaluation, ...]

    @property
    def best(self) -> LineEvaluation | None:
        return self.lines[0] if self.lines else None

    @property
    def verdict(self) -> Verdict | None:
        best = self.best
        return verdict_for(best.white_cp) if best is not None else None
