"""Core enumerations for the session domain."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def letter(self) -> str:
        """Single-letter FEN code (``w``/``b``)."""
        return "w" if self == Color.WHITE else "b"

    @classmethod
    def from_letter(cls, letter: str) -> Color:
        if letter == "w":
            return cls.WHITE
        if letter == "b":
            return cls.BLACK
        raise ValueError(f"Unknown side letter: {letter!r}")

    def __str__(self) -> str:
        return self.name.lower()


class TerminalState(StrEnum):
    """Classification of a position by the rules engine."""

    NONE = "none"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"
    INSUFFICIENT_MATERIAL = "insufficient_material"


class GameResult(IntEnum):
    """Outcome of a game."""

    IN_PROGRESS = 0
    WHITE_WINS = 1
    BLACK_WINS = 2
    DRAW = 3

    @classmethod
    def win_for(cls, color: Color) -> GameResult:
        return cls.WHITE_WINS if color == Color.WHITE else cls.BLACK_WINS
