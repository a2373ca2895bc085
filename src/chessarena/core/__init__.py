"""Domain values and the rules-engine capability."""

from chessarena.core.enums import Color, GameResult, TerminalState
from chessarena.core.move import PROMOTION_PIECES, Move
from chessarena.core.position import STARTING_FEN, Position
from chessarena.core.rules import ChessRules, PortableGame, RulesEngine

__all__ = [
    "PROMOTION_PIECES",
    "STARTING_FEN",
    "ChessRules",
    "Color",
    "GameResult",
    "Move",
    "PortableGame",
    "Position",
    "RulesEngine",
    "TerminalState",
]
