"""chessarena: session coordination core for a two-player chess app."""

from chessarena.core import Color, GameResult, Move, Position
from chessarena.errors import (
    ChessArenaError,
    EngineFault,
    IllegalMove,
    InvalidMove,
    ProtocolError,
)
from chessarena.game import (
    GameOutcome,
    SessionController,
    SessionMode,
    SessionPhase,
    SubmitResult,
    TimeControl,
)
from chessarena.settings import SessionSettings

__version__ = "0.1.0"

__all__ = [
    "ChessArenaError",
    "Color",
    "EngineFault",
    "GameOutcome",
    "GameResult",
    "IllegalMove",
    "InvalidMove",
    "Move",
    "Position",
    "ProtocolError",
    "SessionController",
    "SessionMode",
    "SessionPhase",
    "SessionSettings",
    "SubmitResult",
    "TimeControl",
    "__version__",
]
