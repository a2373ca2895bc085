"""Append-only, navigable history of positions and the moves between them."""

from __future__ import annotations

from dataclasses import dataclass

from chessarena.core.move import Move
from chessarena.core.position import Position
from chessarena.errors import InvalidMove


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """A single entry in the move history."""

    ply: int  # 1-based: the record that produced position index ``ply``
    move: Move
    position_after: Position

    @property
    def san(self) -> str:
        return self.move.san or self.move.uci

    @property
    def move_number(self) -> int:
        return (self.ply + 1) // 2


class PositionLedger:
    """Position sequence with an independent review cursor.

    Position index ``k`` is the position after exactly ``k`` moves, so
    index ``0`` is the starting position and :meth:`live_tip` equals the
    number of moves played.  ``-1`` is accepted everywhere as an alias of
    the starting position.  The cursor is ``None`` while following the
    live tip.

    This is a pure data structure; whether a move may be appended is the
    session's decision.  :meth:`append` only refuses writes while the
    cursor is parked somewhere in the past.
    """

    __slots__ = ("_positions", "_records", "_cursor")

    def __init__(self, start: Position) -> None:
        self._positions: list[Position] = [start]
        self._records: list[MoveRecord] = []
        self._cursor: int | None = None

    # ── Mutation ─────────────────────────────────────────────────────────

    def append(self, move: Move, position_after: Position) -> MoveRecord:
        if not self.is_at_live_tip():
            raise InvalidMove("Ledger is in review; seek to the live tip first")
        record = MoveRecord(
            ply=len(self._records) + 1, move=move, position_after=position_after
        )
        self._records.append(record)
        self._positions.append(position_after)
        return record

    def reset(self, start: Position) -> None:
        """Discard all records and start over from *start*."""
        self._positions = [start]
        self._records.clear()
        self._cursor = None

    # ── Navigation ───────────────────────────────────────────────────────

    def seek(self, index: int) -> Position:
        """Move the cursor to *index* (clamped) and return that position."""
        clamped = max(0, min(index, self.live_tip()))
        self._cursor = None if clamped == self.live_tip() else clamped
        return self._positions[clamped]

    def live_tip(self) -> int:
        """Index of the newest position, i.e. the number of moves played."""
        return len(self._records)

    def is_at_live_tip(self) -> bool:
        return self._cursor is None

    @property
    def cursor(self) -> int:
        """Resolved cursor index in ``[0, live_tip()]``."""
        return self.live_tip() if self._cursor is None else self._cursor

    # ── Queries ──────────────────────────────────────────────────────────

    def position_at(self, index: int) -> Position:
        return self._positions[max(0, min(index, self.live_tip()))]

    @property
    def start(self) -> Position:
        return self._positions[0]

    @property
    def displayed(self) -> Position:
        return self._positions[self.cursor]

    @property
    def live(self) -> Position:
        return self._positions[-1]

    @property
    def positions(self) -> tuple[Position, ...]:
        return tuple(self._positions)

    @property
    def records(self) -> tuple[MoveRecord, ...]:
        return tuple(self._records)

    @property
    def moves(self) -> list[Move]:
        return [r.move for r in self._records]

    @property
    def last_record(self) -> MoveRecord | None:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return len(self._records)
