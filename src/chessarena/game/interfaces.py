"""Shared vocabulary of the game layer: phases, modes, time controls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum, auto

from chessarena.core.enums import Color, GameResult

# ── Session FSM states ───────────────────────────────────────────────────────


class SessionPhase(IntEnum):
    """Finite-state-machine states for a session."""

    MENU = auto()
    SEARCHING = auto()  # waiting for a room partner / random match
    ACTIVE = auto()
    REVIEWING = auto()  # ACTIVE, but the ledger cursor is off the live tip
    GAME_OVER = auto()

    @property
    def is_in_game(self) -> bool:
        return self in (SessionPhase.ACTIVE, SessionPhase.REVIEWING)


class SessionMode(StrEnum):
    LOCAL = "local"
    VS_ENGINE = "vs_engine"
    VS_REMOTE = "vs_remote"


class GameEndReason(StrEnum):
    """Why a game stopped."""

    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    TIME_EXPIRED = "time_expired"
    RESIGNATION = "resignation"
    REPORTED = "reported"  # opponent-reported result with an unknown reason


@dataclass(frozen=True, slots=True)
class GameOutcome:
    """Final result of a game as seen by the session."""

    result: GameResult
    reason: GameEndReason
    winner: Color | None = None

    def title_for(self, viewer: Color | None) -> str:
        """Headline for *viewer* (``None`` for a neutral observer)."""
        if self.winner is None:
            return "Draw"
        if viewer is None:
            return f"{self.winner.name.capitalize()} wins"
        return "Victory!" if viewer == self.winner else "Defeat"


# ── Time control presets ─────────────────────────────────────────────────────


class TimeControl:
    """Immutable time-control definition in whole seconds per side.

    ``None`` seconds means no clock at all.
    """

    __slots__ = ("initial_seconds",)

    def __init__(self, initial_seconds: int | None) -> None:
        if initial_seconds is not None and initial_seconds < 0:
            raise ValueError("initial_seconds must be >= 0")
        self.initial_seconds = initial_seconds

    @classmethod
    def minutes(cls, minutes: int) -> TimeControl:
        return cls(int(minutes) * 60)

    @classmethod
    def bullet_1m(cls) -> TimeControl:
        return cls(60)

    @classmethod
    def blitz_5m(cls) -> TimeControl:
        return cls(300)

    @classmethod
    def rapid_10m(cls) -> TimeControl:
        return cls(600)

    @classmethod
    def unlimited(cls) -> TimeControl:
        """No time limit."""
        return cls(None)

    @property
    def is_unlimited(self) -> bool:
        return self.initial_seconds is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeControl):
            return NotImplemented
        return self.initial_seconds == other.initial_seconds

    def __hash__(self) -> int:
        return hash(self.initial_seconds)

    def __repr__(self) -> str:
        if self.initial_seconds is None:
            return "TimeControl(unlimited)"
        return f"TimeControl({self.initial_seconds // 60}m)"
