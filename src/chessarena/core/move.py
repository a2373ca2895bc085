"""Move value object (UCI-style representation)."""

from __future__ import annotations

import re
from dataclasses import dataclass

PROMOTION_PIECES = frozenset("qrbn")

_SQUARE_RE = re.compile(r"^[a-h][1-8]$")
_UCI_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")


def is_square(name: str) -> bool:
    return bool(_SQUARE_RE.match(name))


@dataclass(frozen=True, slots=True)
class Move:
    """Immutable value object representing a single chess move.

    ``san`` is filled in by the rules engine once the move has been
    applied; it does not take part in equality.
    """

    from_sq: str
    to_sq: str
    promotion: str | None = None
    san: str | None = None

    def __post_init__(self) -> None:
        if not is_square(self.from_sq) or not is_square(self.to_sq):
            raise ValueError(f"Bad squares: {self.from_sq!r} -> {self.to_sq!r}")
        if self.promotion is not None and self.promotion not in PROMOTION_PIECES:
            raise ValueError(f"Bad promotion piece: {self.promotion!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Move):
            return NotImplemented
        return self.uci == other.uci

    def __hash__(self) -> int:
        return hash(self.uci)

    # ── Display ──────────────────────────────────────────────────────────

    def __str__(self) -> str:
        return self.uci

    @property
    def uci(self) -> str:
        """UCI long-algebraic notation."""
        return f"{self.from_sq}{self.to_sq}{self.promotion or ''}"

    @classmethod
    def from_uci(cls, text: str) -> Move:
        match = _UCI_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Not a UCI move: {text!r}")
        return cls(match.group(1), match.group(2), match.group(3))

    def with_promotion(self, piece: str) -> Move:
        return Move(self.from_sq, self.to_sq, piece, self.san)

    def with_san(self, san: str) -> Move:
        return Move(self.from_sq, self.to_sq, self.promotion, san)
