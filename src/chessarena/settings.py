"""User-configurable session settings."""

from __future__ import annotations

from dataclasses import dataclass

# Engine difficulty presets, expressed as search depth.
DIFFICULTY_LEVELS: dict[str, int] = {
    "Beginner": 1,
    "Intermediate": 5,
    "Advanced": 10,
    "Expert": 15,
}

# Time controls offered for online play, in minutes.
ONLINE_TIME_CHOICES: tuple[int, ...] = (1, 5, 10)


@dataclass
class SessionSettings:
    """All user-configurable settings."""

    # Identity
    player_name: str = "Guest"

    # Rules
    chess960: bool = False  # accept shuffled back-rank starting FENs

    # Online play
    default_minutes: int = 10
    verify_peer_positions: bool = False

    # Engine
    engine_command: str = "stockfish"
    engine_args: tuple[str, ...] = ()
    engine_difficulty: int = 5
    engine_retry_budget: int = 1

    # Live evaluation
    analysis_depth: int = 15
    analysis_lines: int = 3

    # Clock
    clock_tick_ms: int = 1000
