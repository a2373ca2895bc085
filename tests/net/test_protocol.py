"""Tests for room protocol message encoding and strict decoding."""

import pytest

from chessarena.core.enums import Color
from chessarena.errors import ProtocolError
from chessarena.net import protocol


class TestLifecycleMessages:
    def test_create_room_payload(self) -> None:
        msg = protocol.CreateRoom("Alice", 5)
        assert msg.to_payload() == {"playerName": "Alice", "timeControl": 5}

    def test_random_match_uses_timer_key(self) -> None:
        assert protocol.RequestRandomMatch("Bob", 1).to_payload()["timer"] == 1

    def test_minutes_from_string(self) -> None:
        msg = protocol.CreateRoom.from_payload({"playerName": "A", "timeControl": "10"})
        assert msg.minutes == 10

    @pytest.mark.parametrize("minutes", [0, -5, "ten", True])
    def test_bad_minutes(self, minutes: object) -> None:
        with pytest.raises(ProtocolError):
            protocol.CreateRoom.from_payload({"playerName": "A", "timeControl": minutes})

    def test_match_made(self) -> None:
        payload = {
            "roomId": "XYZ",
            "white": {"id": "c1"},
            "black": {"id": "c2"},
            "whiteName": "Alice",
            "blackName": "Bob",
            "time": 5,
        }
        msg = protocol.MatchMade.from_payload(payload)
        assert msg.time_allotment == 300
        assert msg.side_of("c2") == Color.BLACK
        assert msg.side_of("c3") is None
        assert msg.name_of(Color.WHITE) == "Alice"
        assert msg.to_payload() == payload

    def test_missing_field(self) -> None:
        with pytest.raises(ProtocolError, match="roomId"):
            protocol.JoinRoom.from_payload({"playerName": "A"})

    def test_payload_must_be_object(self) -> None:
        with pytest.raises(ProtocolError):
            protocol.RoomCreated.from_payload(["XYZ"])  # type: ignore[arg-type]


class TestInGameMessages:
    def test_sync_state(self) -> None:
        payload = {
            "roomId": "XYZ",
            "seq": 3,
            "fen": "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1",
            "whiteTime": "4:59",
            "blackTime": "5:00",
            "pgn": "1. e4",
            "move": "e2e4",
        }
        msg = protocol.SyncState.from_payload(payload)
        assert msg.seq == 3
        assert msg.move == "e2e4"
        assert msg.to_payload()["turn"] == "b"

    def test_sync_rejects_bad_fen(self) -> None:
        with pytest.raises(ProtocolError):
            protocol.SyncState.from_payload(
                {"roomId": "X", "seq": 1, "fen": "garbage", "whiteTime": "", "blackTime": ""}
            )

    def test_report_result(self) -> None:
        msg = protocol.ReportResult("XYZ", 2, "win", "Resignation", Color.BLACK)
        payload = msg.to_payload()
        assert payload["winner"] == "Black"
        assert protocol.ReportResult.from_payload(payload) == msg

    def test_draw_without_winner(self) -> None:
        msg = protocol.ReportResult.from_payload(
            {"roomId": "XYZ", "seq": 1, "result": "draw", "reason": "agreement"}
        )
        assert msg.winner is None

    def test_result_winner_mismatch(self) -> None:
        with pytest.raises(ProtocolError):
            protocol.ReportResult.from_payload(
                {"roomId": "XYZ", "seq": 1, "result": "win", "winner": None}
            )

    def test_relay_names(self) -> None:
        assert protocol.RELAYED_EVENTS[protocol.SYNC_STATE] == "sync_state_from_server"
        assert protocol.RELAYED_EVENTS[protocol.UPDATE_GAME_RESULT] == "game_over_from_server"
