"""Shared engine request/response models."""

from __future__ import annotations

from dataclasses import dataclass

from chessarena.core.enums import Color
from chessarena.core.move import Move
from chessarena.core.position import Position

MATE_SCORE_CP = 10_000
MIN_DEPTH = 1
MAX_DEPTH = 30


def clamp_depth(depth: int) -> int:
    return max(MIN_DEPTH, min(int(depth), MAX_DEPTH))


@dataclass(slots=True, frozen=True)
class EngineOptions:
    """Options sent to the search process before searching."""

    multipv: int = 1
    skill_level: int | None = None
    depth_ceiling: int | None = None

    def effective_depth(self, depth: int) -> int:
        depth = clamp_depth(depth)
        if self.depth_ceiling is not None:
            depth = min(depth, self.depth_ceiling)
        return depth


@dataclass(slots=True, frozen=True)
class Score:
    """Engine score: centipawns or signed distance to mate.

    Raw engine scores are relative to the side to move of the analysed
    position; :meth:`for_white` turns them into an absolute perspective.
    """

    cp: int | None = None
    mate: int | None = None

    def __post_init__(self) -> None:
        if (self.cp is None) == (self.mate is None):
            raise ValueError("Score needs exactly one of cp / mate")

    @property
    def is_mate(self) -> bool:
        return self.mate is not None

    def for_white(self, side_to_move: Color) -> Score:
        if side_to_move == Color.WHITE:
            return self
        if self.mate is not None:
            return Score(mate=-self.mate)
        assert self.cp is not None
        return Score(cp=-self.cp)

    def as_centipawns(self) -> int:
        """Collapse to centipawns; mates map to ``±MATE_SCORE_CP``."""
        if self.mate is not None:
            return MATE_SCORE_CP if self.mate > 0 else -MATE_SCORE_CP
        assert self.cp is not None
        return self.cp


@dataclass(slots=True, frozen=True)
class EngineRequest:
    """One search, tagged with the position it was issued for."""

    request_id: int
    position: Position
    depth: int
    multipv: int = 1

    def is_for(self, position: Position) -> bool:
        return self.position == position


@dataclass(slots=True, frozen=True)
class PartialEvaluation:
    """Streaming ``info`` update for one principal variation."""

    request: EngineRequest
    line_index: int
    depth: int | None
    score: Score
    pv: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class BestMove:
    """Terminal answer carrying the engine's choice."""

    request: EngineRequest
    move: Move
    ponder: Move | None = None


@dataclass(slots=True, frozen=True)
class NoMove:
    """Terminal answer when the analysed position has no legal move."""

    request: EngineRequest
