"""Tests for ChessRules — the python-chess backed rules engine."""

import pytest

from chessarena.core.enums import Color, TerminalState
from chessarena.core.move import Move
from chessarena.core.position import STARTING_FEN, Position
from chessarena.core.rules import ChessRules
from chessarena.errors import IllegalMove

PROMOTION_FEN = "8/4P3/8/8/8/8/k7/4K3 w - - 0 1"


@pytest.fixture
def rules() -> ChessRules:
    return ChessRules()


class TestMoveValue:
    def test_uci(self) -> None:
        assert Move("e7", "e8", "q").uci == "e7e8q"

    def test_from_uci(self) -> None:
        assert Move.from_uci("g1f3") == Move("g1", "f3")

    def test_san_ignored_for_equality(self) -> None:
        assert Move("e2", "e4", san="e4") == Move("e2", "e4")

    @pytest.mark.parametrize("bad", ["e9e4", "e2", "e7e8k", ""])
    def test_rejects_garbage(self, bad: str) -> None:
        with pytest.raises(ValueError):
            Move.from_uci(bad)


class TestInitialPosition:
    def test_standard(self, rules: ChessRules) -> None:
        pos = rules.initial_position()
        assert pos.fen == STARTING_FEN
        assert pos.side_to_move == Color.WHITE
        assert pos.fullmove_number == 1

    def test_variant_fen(self, rules: ChessRules) -> None:
        fen = "bqnbrkrn/pppppppp/8/8/8/8/PPPPPPPP/BQNBRKRN w KQkq - 0 1"
        pos = ChessRules(chess960=True).initial_position(fen)
        assert pos.board_fen == "bqnbrkrn/pppppppp/8/8/8/8/PPPPPPPP/BQNBRKRN"

    def test_invalid_start_raises(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMove):
            rules.initial_position("8/8/8/8/8/8/8/8 w - - 0 1")


class TestMoves:
    def test_legal_moves_from_square(self, rules: ChessRules) -> None:
        moves = rules.legal_moves(rules.initial_position(), "g1")
        assert {m.uci for m in moves} == {"g1f3", "g1h3"}

    def test_twenty_opening_moves(self, rules: ChessRules) -> None:
        assert len(rules.legal_moves(rules.initial_position())) == 20

    def test_apply_move(self, rules: ChessRules) -> None:
        after = rules.apply_move(rules.initial_position(), Move("e2", "e4"))
        assert after.side_to_move == Color.BLACK
        assert after.board_fen == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR"

    def test_illegal_move_raises(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMove):
            rules.apply_move(rules.initial_position(), Move("e2", "e5"))

    def test_san(self, rules: ChessRules) -> None:
        assert rules.san(rules.initial_position(), Move("g1", "f3")) == "Nf3"


class TestPromotion:
    def test_needs_promotion(self, rules: ChessRules) -> None:
        pos = Position.from_fen(PROMOTION_FEN)
        assert rules.needs_promotion(pos, "e7", "e8")

    def test_ordinary_move_needs_none(self, rules: ChessRules) -> None:
        assert not rules.needs_promotion(rules.initial_position(), "e2", "e4")

    def test_underpromotion(self, rules: ChessRules) -> None:
        pos = Position.from_fen(PROMOTION_FEN)
        after = rules.apply_move(pos, Move("e7", "e8", "n"))
        assert after.board_fen.startswith("4N3")

    def test_promotion_without_piece_is_illegal(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMove):
            rules.apply_move(Position.from_fen(PROMOTION_FEN), Move("e7", "e8"))


class TestTerminalState:
    def test_in_progress(self, rules: ChessRules) -> None:
        assert rules.terminal_state(rules.initial_position()) == TerminalState.NONE

    def test_checkmate(self, rules: ChessRules) -> None:
        pos = rules.initial_position()
        for uci in ("f2f3", "e7e5", "g2g4", "d8h4"):
            pos = rules.apply_move(pos, Move.from_uci(uci))
        assert rules.terminal_state(pos) == TerminalState.CHECKMATE
        assert rules.is_in_check(pos)

    def test_stalemate(self, rules: ChessRules) -> None:
        pos = Position.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
        assert rules.terminal_state(pos) == TerminalState.STALEMATE

    def test_insufficient_material(self, rules: ChessRules) -> None:
        pos = Position.from_fen("8/8/4k3/8/8/4K3/8/8 w - - 0 1")
        assert rules.terminal_state(pos) == TerminalState.INSUFFICIENT_MATERIAL

    def test_fifty_moves(self, rules: ChessRules) -> None:
        pos = Position.from_fen("8/8/4k3/8/8/4K3/4R3/8 w - - 100 80")
        assert rules.terminal_state(pos) == TerminalState.DRAW

    def test_threefold_repetition(self, rules: ChessRules) -> None:
        history = [rules.initial_position()]
        for uci in ("g1f3", "g8f6", "f3g1", "f6g8") * 2:
            history.append(rules.apply_move(history[-1], Move.from_uci(uci)))
        *earlier, current = history
        assert rules.terminal_state(current, earlier) == TerminalState.DRAW
        assert rules.terminal_state(current) == TerminalState.NONE

    def test_twofold_is_not_a_draw(self, rules: ChessRules) -> None:
        history = [rules.initial_position()]
        for uci in ("g1f3", "g8f6", "f3g1", "f6g8"):
            history.append(rules.apply_move(history[-1], Move.from_uci(uci)))
        *earlier, current = history
        assert rules.terminal_state(current, earlier) == TerminalState.NONE


class TestPortableNotation:
    def test_export(self, rules: ChessRules) -> None:
        text = rules.to_portable_notation([Move("e2", "e4"), Move("e7", "e5")])
        assert text.startswith("1. e4 e5")

    def test_import(self, rules: ChessRules) -> None:
        game = rules.from_portable_notation("1. e4 e5 2. Nf3 Nc6 *")
        assert [m.uci for m in game.moves] == ["e2e4", "e7e5", "g1f3", "b8c6"]
        assert game.moves[2].san == "Nf3"
        assert game.start.fen == STARTING_FEN

    def test_import_garbage_raises(self, rules: ChessRules) -> None:
        with pytest.raises(IllegalMove):
            rules.from_portable_notation("1. e4 Ke7 2. Qxz9 *")
