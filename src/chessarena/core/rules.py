"""Rules-engine capability consumed by the session core.

The session never re-derives legality itself; everything it needs to
know about the game of chess goes through :class:`RulesEngine`.
:class:`ChessRules` is the production implementation on top of
python-chess.
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import chess
import chess.pgn

from chessarena.core.enums import Color, TerminalState
from chessarena.core.move import Move
from chessarena.core.position import STARTING_FEN, Position
from chessarena.errors import IllegalMove


@dataclass(frozen=True, slots=True)
class PortableGame:
    """A decoded move record: where it starts and the moves played."""

    start: Position
    moves: tuple[Move, ...]


class RulesEngine(Protocol):
    """Protocol for the move-legality collaborator."""

    def initial_position(self, variant_fen: str | None = None) -> Position: ...

    def legal_moves(
        self, position: Position, square: str | None = None
    ) -> list[Move]: ...

    def apply_move(self, position: Position, move: Move) -> Position: ...

    def san(self, position: Position, move: Move) -> str: ...

    def needs_promotion(self, position: Position, from_sq: str, to_sq: str) -> bool: ...

    def terminal_state(
        self, position: Position, history: Sequence[Position] = ()
    ) -> TerminalState: ...

    def is_in_check(self, position: Position) -> bool: ...

    def to_portable_notation(
        self,
        moves: Sequence[Move],
        start: Position | None = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> str: ...

    def from_portable_notation(self, text: str) -> PortableGame: ...


class ChessRules:
    """:class:`RulesEngine` backed by python-chess.

    Args:
        chess960: Interpret castling rights of supplied FENs the
            Chess960 way (for shuffled back-rank starting positions).
    """

    __slots__ = ("_chess960",)

    def __init__(self, *, chess960: bool = False) -> None:
        self._chess960 = chess960

    # ── RulesEngine implementation ───────────────────────────────────────

    def initial_position(self, variant_fen: str | None = None) -> Position:
        board = self._board(Position.from_fen(variant_fen or STARTING_FEN))
        if not board.is_valid():
            raise IllegalMove(f"Invalid starting position: {variant_fen}")
        return _snapshot(board)

    def legal_moves(self, position: Position, square: str | None = None) -> list[Move]:
        board = self._board(position)
        moves = board.legal_moves
        if square is not None:
            origin = chess.parse_square(square)
            return [_to_move(m) for m in moves if m.from_square == origin]
        return [_to_move(m) for m in moves]

    def apply_move(self, position: Position, move: Move) -> Position:
        board = self._board(position)
        board.push(self._legal(board, move))
        return _snapshot(board)

    def san(self, position: Position, move: Move) -> str:
        board = self._board(position)
        return board.san(self._legal(board, move))

    def needs_promotion(self, position: Position, from_sq: str, to_sq: str) -> bool:
        """``True`` when *from_sq*→*to_sq* is only legal with a promotion piece."""
        board = self._board(position)
        origin = chess.parse_square(from_sq)
        target = chess.parse_square(to_sq)
        return any(
            m.from_square == origin and m.to_square == target and m.promotion
            for m in board.legal_moves
        )

    def terminal_state(
        self, position: Position, history: Sequence[Position] = ()
    ) -> TerminalState:
        """Classify *position*; *history* holds the positions that preceded it.

        Repetition is judged on the EPD key (placement, side to move,
        castling rights, legal en passant square), so a position counts
        as repeated the way python-chess counts it.
        """
        board = self._board(position)
        if board.is_checkmate():
            return TerminalState.CHECKMATE
        if board.is_stalemate():
            return TerminalState.STALEMATE
        if board.is_insufficient_material():
            return TerminalState.INSUFFICIENT_MATERIAL
        if board.is_fifty_moves():
            return TerminalState.DRAW
        if history:
            key = board.epd()
            seen = sum(1 for earlier in history if self._board(earlier).epd() == key)
            if seen + 1 >= 3:
                return TerminalState.DRAW
        return TerminalState.NONE

    def is_in_check(self, position: Position) -> bool:
        return self._board(position).is_check()

    def to_portable_notation(
        self,
        moves: Sequence[Move],
        start: Position | None = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> str:
        board = self._board(start or self.initial_position())
        game = chess.pgn.Game()
        if start is not None and start.fen != STARTING_FEN:
            game.setup(board)
        for key, value in (headers or {}).items():
            game.headers[key] = value

        node: chess.pgn.GameNode = game
        for move in moves:
            legal = self._legal(board, move)
            board.push(legal)
            node = node.add_variation(legal)

        exporter = chess.pgn.StringExporter(
            headers=headers is not None, variations=False, comments=False
        )
        return game.accept(exporter)

    def from_portable_notation(self, text: str) -> PortableGame:
        game = chess.pgn.read_game(io.StringIO(text))
        if game is None:
            raise IllegalMove("Empty PGN")
        if game.errors:
            raise IllegalMove(f"Invalid PGN: {game.errors[0]}")

        board = game.board()
        start = _snapshot(board)
        moves: list[Move] = []
        for raw in game.mainline_moves():
            moves.append(_to_move(raw).with_san(board.san(raw)))
            board.push(raw)
        return PortableGame(start=start, moves=tuple(moves))

    # ── Internal ─────────────────────────────────────────────────────────

    def _board(self, position: Position) -> chess.Board:
        try:
            return chess.Board(position.fen, chess960=self._chess960)
        except ValueError as exc:
            raise IllegalMove(f"Invalid position {position.fen!r}: {exc}") from exc

    @staticmethod
    def _legal(board: chess.Board, move: Move) -> chess.Move:
        candidate = chess.Move.from_uci(move.uci)
        if candidate not in board.legal_moves:
            raise IllegalMove(f"Illegal move {move.uci} in {board.fen()}")
        return candidate


def _snapshot(board: chess.Board) -> Position:
    return Position(
        fen=board.fen(),
        side_to_move=Color.WHITE if board.turn == chess.WHITE else Color.BLACK,
        fullmove_number=board.fullmove_number,
    )


def _to_move(move: chess.Move) -> Move:
    promotion = chess.piece_symbol(move.promotion) if move.promotion else None
    return Move(
        chess.square_name(move.from_square),
        chess.square_name(move.to_square),
        promotion,
    )
