"""Search-process integration: UCI codec, Qt process bridge and channel."""

from chessarena.engine.channel import EngineChannel, IEngineProcess
from chessarena.engine.process import EngineProcess
from chessarena.engine.search import (
    MATE_SCORE_CP,
    BestMove,
    EngineOptions,
    EngineRequest,
    NoMove,
    PartialEvaluation,
    Score,
    clamp_depth,
)

__all__ = [
    "MATE_SCORE_CP",
    "BestMove",
    "EngineChannel",
    "EngineOptions",
    "EngineProcess",
    "EngineRequest",
    "IEngineProcess",
    "NoMove",
    "PartialEvaluation",
    "Score",
    "clamp_depth",
]
