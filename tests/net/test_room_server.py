"""Tests for RoomServer — matchmaking and relay."""

import string

import pytest

from chessarena.net import protocol
from chessarena.net.server import RoomServer, random_room_code

Sent = list[tuple[str, str, dict]]


@pytest.fixture
def outbox() -> Sent:
    return []


@pytest.fixture
def server(outbox: Sent) -> RoomServer:
    codes = iter(["ROOM1", "ROOM2", "ROOM3"])
    return RoomServer(
        code_factory=lambda: next(codes),
        send=lambda client, event, payload: outbox.append((client, event, payload)),
    )


def _events_for(outbox: Sent, client: str) -> list[str]:
    return [event for to, event, _ in outbox if to == client]


def _seat_pair(server: RoomServer) -> None:
    server.handle("a", protocol.CREATE_ROOM, {"playerName": "Alice", "timeControl": 5})
    server.handle("b", protocol.JOIN_ROOM, {"roomId": "room1", "playerName": "Bob"})


class TestRooms:
    def test_random_code_shape(self) -> None:
        code = random_room_code()
        assert len(code) == 6
        assert all(ch in string.ascii_uppercase + string.digits for ch in code)

    def test_create_room(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("a", protocol.CREATE_ROOM, {"playerName": "Alice", "timeControl": 5})
        assert outbox == [("a", protocol.ROOM_CREATED, {"roomId": "ROOM1"})]
        assert server.room_ids == ["ROOM1"]

    def test_join_starts_match_creator_white(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        made = [p for to, e, p in outbox if e == protocol.MATCH_MADE]
        assert len(made) == 2
        assert made[0] == made[1]
        assert made[0]["white"] == {"id": "a"}
        assert made[0]["black"] == {"id": "b"}
        assert made[0]["time"] == 5

    def test_join_unknown_room(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("b", protocol.JOIN_ROOM, {"roomId": "NOPE", "playerName": "Bob"})
        assert outbox == [("b", protocol.ERROR, {"message": "Room not found"})]

    def test_join_full_room(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        server.handle("c", protocol.JOIN_ROOM, {"roomId": "ROOM1", "playerName": "Carol"})
        assert outbox[-1] == ("c", protocol.ERROR, {"message": "Room is full"})

    def test_join_own_room(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("a", protocol.CREATE_ROOM, {"playerName": "Alice", "timeControl": 5})
        server.handle("a", protocol.JOIN_ROOM, {"roomId": "ROOM1", "playerName": "Alice"})
        assert outbox[-1][2] == {"message": "You are already in this room"}

    def test_malformed_request(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("a", protocol.CREATE_ROOM, {"playerName": "Alice"})
        assert _events_for(outbox, "a") == [protocol.ERROR]

    def test_unknown_event(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("a", "dance", {})
        assert _events_for(outbox, "a") == [protocol.ERROR]


class TestRandomMatching:
    def test_pairs_same_allotment(self, server: RoomServer, outbox: Sent) -> None:
        server.handle("a", protocol.WANT_TO_PLAY, {"playerName": "Alice", "timer": 5})
        server.handle("b", protocol.WANT_TO_PLAY, {"playerName": "Bob", "timer": 1})
        assert server.waiting_count == 2
        server.handle("c", protocol.WANT_TO_PLAY, {"playerName": "Carol", "timer": 5})
        assert server.waiting_count == 1
        made = [p for to, e, p in outbox if e == protocol.MATCH_MADE]
        assert made[0]["white"] == {"id": "a"}
        assert made[0]["black"] == {"id": "c"}

    def test_no_self_pairing(self, server: RoomServer) -> None:
        server.handle("a", protocol.WANT_TO_PLAY, {"playerName": "Alice", "timer": 5})
        server.handle("a", protocol.WANT_TO_PLAY, {"playerName": "Alice", "timer": 5})
        assert server.waiting_count == 1

    def test_leave_removes_waiting(self, server: RoomServer) -> None:
        server.handle("a", protocol.WANT_TO_PLAY, {"playerName": "Alice", "timer": 5})
        server.handle("a", protocol.LEAVE_ROOM, {"roomId": None})
        assert server.waiting_count == 0


class TestRelay:
    def test_relays_to_other_seat(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        payload = {"roomId": "ROOM1", "seq": 1, "text": "hi", "sender": "Alice"}
        server.handle("a", protocol.SEND_MESSAGE, payload)
        assert outbox[-1] == ("b", protocol.RECEIVE_MESSAGE, payload)

    def test_relay_unknown_room(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        server.handle("a", protocol.SYNC_STATE, {"roomId": "ROOM9"})
        assert outbox[-1] == ("a", protocol.ERROR, {"message": "Room not found"})

    def test_outsider_cannot_relay(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        server.handle("c", protocol.SYNC_STATE, {"roomId": "ROOM1"})
        assert outbox[-1] == ("c", protocol.ERROR, {"message": "Not seated in this room"})

    def test_disconnect_notifies_opponent(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        server.disconnect("b")
        assert outbox[-1] == ("a", protocol.ERROR, {"message": "Opponent left the room"})
        assert server.room_ids == []

    def test_no_notice_after_result(self, server: RoomServer, outbox: Sent) -> None:
        _seat_pair(server)
        server.handle(
            "a",
            protocol.UPDATE_GAME_RESULT,
            {"roomId": "ROOM1", "seq": 1, "result": "win", "winner": "Black"},
        )
        count = len(outbox)
        server.disconnect("b")
        assert len(outbox) == count
