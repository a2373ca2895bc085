"""Acceptance policies for positions received from the peer."""

from __future__ import annotations

from typing import Protocol

from chessarena.core.move import Move
from chessarena.core.position import Position
from chessarena.core.rules import RulesEngine
from chessarena.errors import IllegalMove
from chessarena.net.protocol import SyncState


class SyncVerifier(Protocol):
    def verify(self, current: Position, message: SyncState) -> str | None:
        """Return ``None`` to accept *message*, or the reason to refuse it."""


class TrustMover:
    """Mover-authoritative relay: the sender already validated its move."""

    def verify(self, current: Position, message: SyncState) -> str | None:
        return None


class RevalidateWithRules:
    """Re-derive the synced position from the live one before accepting it."""

    __slots__ = ("_rules",)

    def __init__(self, rules: RulesEngine) -> None:
        self._rules = rules

    def verify(self, current: Position, message: SyncState) -> str | None:
        claimed = Position.from_fen(message.fen)
        if message.move is not None:
            try:
                candidates = [Move.from_uci(message.move)]
            except ValueError:
                return f"Unreadable move {message.move!r}"
        else:
            candidates = self._rules.legal_moves(current)

        for move in candidates:
            try:
                after = self._rules.apply_move(current, move)
            except IllegalMove:
                continue
            if _same_placement(after, claimed):
                return None
        return f"Position {message.fen!r} does not follow from {current.fen!r}"


def _same_placement(a: Position, b: Position) -> bool:
    # Board, side to move, castling and en-passant; counters may differ.
    return a.fen.split()[:4] == b.fen.split()[:4]
