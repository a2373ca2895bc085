"""Immutable position snapshot exchanged between all components."""

from __future__ import annotations

from dataclasses import dataclass

from chessarena.core.enums import Color

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@dataclass(frozen=True, slots=True)
class Position:
    """A complete board snapshot keyed by its FEN string.

    Equality is FEN equality, which is what the stale-response checks
    compare against.
    """

    fen: str
    side_to_move: Color
    fullmove_number: int

    @classmethod
    def from_fen(cls, fen: str) -> Position:
        """Build a snapshot from a FEN string without validating the board."""
        fields = fen.strip().split()
        if len(fields) < 2:
            raise ValueError(f"Malformed FEN: {fen!r}")
        side = Color.from_letter(fields[1])
        fullmove = int(fields[5]) if len(fields) >= 6 else 1
        return cls(fen=" ".join(fields), side_to_move=side, fullmove_number=fullmove)

    @property
    def board_fen(self) -> str:
        """Piece placement field only."""
        return self.fen.split()[0]

    def __str__(self) -> str:
        return self.fen
