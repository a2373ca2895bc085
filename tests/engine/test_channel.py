"""Tests for EngineChannel — request attribution over the UCI stream."""

from PyQt6.QtTest import QSignalSpy

from chessarena.core.move import Move
from chessarena.core.rules import ChessRules
from chessarena.engine.channel import EngineChannel
from chessarena.engine.search import EngineOptions

_RULES = ChessRules()
_START = _RULES.initial_position()
_AFTER_E4 = _RULES.apply_move(_START, Move("e2", "e4"))


class TestHandshake:
    def test_lazy_start_on_first_search(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        assert engine_process.start_count == 0
        request = channel.request(_START, 8)
        assert engine_process.start_count == 1
        assert engine_process.written[0] == "uci"
        assert engine_process.written[-2:] == [
            f"position fen {_START.fen}",
            "go depth 8",
        ]
        assert request.depth == 8
        assert request.is_for(_START)

    def test_options_written(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        channel.configure(EngineOptions(multipv=3, skill_level=5))
        channel.start()
        assert "setoption name MultiPV value 3" in engine_process.written
        assert "setoption name Skill Level value 5" in engine_process.written

    def test_depth_is_clamped(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        assert channel.request(_START, 99).depth == 30
        assert channel.request(_START, 0).depth == 1


class TestAttribution:
    def test_best_move_tagged_with_request(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        best = QSignalSpy(channel.best_move)
        request = channel.request(_START, 5)
        engine_process.reply("info depth 5 score cp 20 pv e2e4", "bestmove e2e4")
        assert len(best) == 1
        answer = best[0][0]
        assert answer.request == request
        assert answer.move == Move("e2", "e4")
        assert channel.pending_count == 0

    def test_partial_evaluations(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        partials = QSignalSpy(channel.partial_evaluation)
        request = channel.request(_START, 5)
        engine_process.reply(
            "info depth 5 multipv 1 score cp 20 pv e2e4",
            "info depth 5 multipv 2 score cp 10 pv d2d4",
        )
        assert len(partials) == 2
        assert partials[1][0].line_index == 2
        assert partials[1][0].request == request

    def test_late_answer_keeps_old_request(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        best = QSignalSpy(channel.best_move)
        first = channel.request(_START, 5)
        second = channel.request(_AFTER_E4, 5)
        assert engine_process.commands("stop") == ["stop"]
        assert channel.current_request == second

        engine_process.reply("bestmove d2d4", "bestmove e7e5")
        assert [best[i][0].request for i in range(len(best))] == [first, second]

    def test_no_move(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        no_move = QSignalSpy(channel.no_move)
        request = channel.request(_START, 5)
        engine_process.reply("bestmove (none)")
        assert len(no_move) == 1
        assert no_move[0][0].request == request

    def test_unsolicited_output_dropped(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        best = QSignalSpy(channel.best_move)
        channel.start()
        engine_process.reply("bestmove e2e4")
        assert len(best) == 0

    def test_cancel_writes_stop_once(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        channel.request(_START, 5)
        channel.cancel()
        channel.cancel()
        assert engine_process.commands("stop") == ["stop"]
        assert channel.current_request is None


class TestFaults:
    def test_malformed_answer(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        faults = QSignalSpy(channel.fault)
        request = channel.request(_START, 5)
        engine_process.reply("bestmove zz99")
        assert len(faults) == 1
        assert faults[0][0] == request

    def test_crash_reports_current_request(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        faults = QSignalSpy(channel.fault)
        request = channel.request(_START, 5)
        engine_process.crash()
        assert len(faults) == 1
        assert faults[0][0] == request
        assert faults[0][1] == "engine crashed"
        assert not channel.is_started
        assert channel.pending_count == 0

    def test_restart_after_crash(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        channel.request(_START, 5)
        engine_process.crash()
        channel.request(_START, 5)
        assert engine_process.start_count == 2

    def test_unstartable_engine(self, broken_engine_process) -> None:
        channel = EngineChannel(broken_engine_process)
        faults = QSignalSpy(channel.fault)
        channel.request(_START, 5)
        assert len(faults) >= 1
        assert channel.pending_count == 0

    def test_shutdown(self, engine_process) -> None:
        channel = EngineChannel(engine_process)
        channel.request(_START, 5)
        channel.shutdown()
        assert not engine_process.is_running
        assert channel.pending_count == 0
