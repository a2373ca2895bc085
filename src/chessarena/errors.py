"""Exception taxonomy shared by every layer of the session core."""

from __future__ import annotations


class ChessArenaError(Exception):
    """Base class for all errors raised by chessarena."""


class IllegalMove(ChessArenaError):
    """The rules engine refused a move in the given position."""


class InvalidMove(ChessArenaError):
    """A move was appended to the ledger while it was not at the live tip."""


class ProtocolError(ChessArenaError):
    """A peer/room-server message was refused or could not be understood.

    Args:
        message: Human-readable reason.
        before_match: ``True`` when the failure happened before a game
            started (room not found, room full, ...).
    """

    def __init__(self, message: str, *, before_match: bool = False) -> None:
        super().__init__(message)
        self.before_match = before_match


class EngineFault(ChessArenaError):
    """The search process is unavailable, crashed, or answered garbage."""
