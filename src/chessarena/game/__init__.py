"""Game layer: session state machine, history ledger, clocks."""

from chessarena.game.interfaces import (
    GameEndReason,
    GameOutcome,
    SessionMode,
    SessionPhase,
    TimeControl,
)
from chessarena.game.clock import ClockPair, ClockSnapshot, TimeExpired, format_clock
from chessarena.game.ledger import MoveRecord, PositionLedger
from chessarena.game.ticker import ClockTicker, ManualTicker, QtClockTicker
from chessarena.game.session import (
    ChatLine,
    PendingPromotion,
    RejectReason,
    SessionController,
    SessionEvents,
    SubmitResult,
    SubmitStatus,
)

__all__ = [
    "ChatLine",
    "ClockPair",
    "ClockSnapshot",
    "ClockTicker",
    "GameEndReason",
    "GameOutcome",
    "ManualTicker",
    "MoveRecord",
    "PendingPromotion",
    "PositionLedger",
    "QtClockTicker",
    "RejectReason",
    "SessionController",
    "SessionEvents",
    "SessionMode",
    "SessionPhase",
    "SubmitResult",
    "SubmitStatus",
    "TimeControl",
    "TimeExpired",
    "format_clock",
]
