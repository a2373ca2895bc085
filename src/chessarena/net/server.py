"""Room server: matchmaking and relay between the two seats of a room.

The server never looks at positions.  It pairs clients, then forwards
in-game messages from one seat to the other in arrival order.
"""

from __future__ import annotations

import logging
import secrets
import string
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from chessarena.core.enums import Color
from chessarena.errors import ProtocolError
from chessarena.net import protocol
from chessarena.net.protocol import Payload

_LOGGER = logging.getLogger(__name__)

SendCallback = Callable[[str, str, Payload], None]  # client_id, event, payload

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_LENGTH = 6


def random_room_code() -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_LENGTH))


@dataclass
class _Seat:
    client_id: str
    name: str


@dataclass
class _Room:
    room_id: str
    minutes: int
    seats: dict[Color, _Seat] = field(default_factory=dict)
    finished: bool = False

    @property
    def is_full(self) -> bool:
        return len(self.seats) == 2

    def color_of(self, client_id: str) -> Color | None:
        for color, seat in self.seats.items():
            if seat.client_id == client_id:
                return color
        return None

    def other_seat(self, client_id: str) -> _Seat | None:
        color = self.color_of(client_id)
        if color is None:
            return None
        return self.seats.get(color.opposite)


@dataclass
class _Waiting:
    client_id: str
    name: str
    minutes: int


class RoomServer:
    """Server half of the room protocol.

    Args:
        code_factory: Produces candidate room codes (random by default).
        send: Delivery callback; usually bound later via :meth:`attach`.
    """

    def __init__(
        self,
        *,
        code_factory: Callable[[], str] = random_room_code,
        send: SendCallback | None = None,
    ) -> None:
        self._code_factory = code_factory
        self._send = send
        self._rooms: dict[str, _Room] = {}
        self._names: dict[str, str] = {}
        self._waiting: deque[_Waiting] = deque()

    def attach(self, send: SendCallback) -> None:
        self._send = send

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def room_ids(self) -> list[str]:
        return list(self._rooms)

    @property
    def waiting_count(self) -> int:
        return len(self._waiting)

    # ── Dispatch ─────────────────────────────────────────────────────────

    def handle(self, client_id: str, event: str, payload: Payload) -> None:
        """Process one client message."""
        try:
            if event == protocol.REGISTER_NAME:
                msg = protocol.RegisterName.from_payload(payload)
                self._names[client_id] = msg.player_name
            elif event == protocol.CREATE_ROOM:
                self._create_room(client_id, protocol.CreateRoom.from_payload(payload))
            elif event == protocol.JOIN_ROOM:
                self._join_room(client_id, protocol.JoinRoom.from_payload(payload))
            elif event == protocol.WANT_TO_PLAY:
                self._want_to_play(
                    client_id, protocol.RequestRandomMatch.from_payload(payload)
                )
            elif event == protocol.LEAVE_ROOM:
                self.disconnect(client_id)
            elif event in protocol.RELAYED_EVENTS:
                self._relay(client_id, event, payload)
            else:
                raise ProtocolError(f"Unknown event {event!r}")
        except ProtocolError as exc:
            _LOGGER.warning("Refused %s from %s: %s", event, client_id, exc)
            self._emit(client_id, protocol.ErrorMessage(str(exc)))

    def disconnect(self, client_id: str) -> None:
        """Drop every trace of *client_id* and tell its opponent."""
        self._waiting = deque(w for w in self._waiting if w.client_id != client_id)
        for room_id, room in list(self._rooms.items()):
            if room.color_of(client_id) is None:
                continue
            other = room.other_seat(client_id)
            del self._rooms[room_id]
            if other is not None and not room.finished:
                self._emit(other.client_id, protocol.ErrorMessage("Opponent left the room"))

    # ── Lifecycle ────────────────────────────────────────────────────────

    def _create_room(self, client_id: str, msg: protocol.CreateRoom) -> None:
        room_id = self._new_code()
        room = _Room(room_id, msg.minutes)
        room.seats[Color.WHITE] = _Seat(client_id, self._name(client_id, msg.player_name))
        self._rooms[room_id] = room
        self._emit(client_id, protocol.RoomCreated(room_id))

    def _join_room(self, client_id: str, msg: protocol.JoinRoom) -> None:
        room_id = msg.room_id.strip().upper()
        room = self._rooms.get(room_id)
        if room is None:
            raise ProtocolError("Room not found")
        if room.color_of(client_id) is not None:
            raise ProtocolError("You are already in this room")
        if room.is_full:
            raise ProtocolError("Room is full")
        room.seats[Color.BLACK] = _Seat(client_id, self._name(client_id, msg.player_name))
        self._start(room)

    def _want_to_play(self, client_id: str, msg: protocol.RequestRandomMatch) -> None:
        name = self._name(client_id, msg.player_name)
        for waiting in self._waiting:
            if waiting.minutes == msg.minutes and waiting.client_id != client_id:
                self._waiting.remove(waiting)
                room = _Room(self._new_code(), msg.minutes)
                room.seats[Color.WHITE] = _Seat(waiting.client_id, waiting.name)
                room.seats[Color.BLACK] = _Seat(client_id, name)
                self._rooms[room.room_id] = room
                self._start(room)
                return
        if all(w.client_id != client_id for w in self._waiting):
            self._waiting.append(_Waiting(client_id, name, msg.minutes))

    def _start(self, room: _Room) -> None:
        white = room.seats[Color.WHITE]
        black = room.seats[Color.BLACK]
        made = protocol.MatchMade(
            room_id=room.room_id,
            white_id=white.client_id,
            black_id=black.client_id,
            white_name=white.name,
            black_name=black.name,
            minutes=room.minutes,
        )
        _LOGGER.info("Room %s: %s vs %s", room.room_id, white.name, black.name)
        self._emit(white.client_id, made)
        self._emit(black.client_id, made)

    # ── Relay ────────────────────────────────────────────────────────────

    def _relay(self, client_id: str, event: str, payload: Payload) -> None:
        room_id = payload.get("roomId") if isinstance(payload, dict) else None
        room = self._rooms.get(room_id) if isinstance(room_id, str) else None
        if room is None:
            raise ProtocolError("Room not found")
        other = room.other_seat(client_id)
        if other is None:
            raise ProtocolError("Not seated in this room")
        if event == protocol.UPDATE_GAME_RESULT:
            room.finished = True
        assert self._send is not None
        self._send(other.client_id, protocol.RELAYED_EVENTS[event], dict(payload))

    # ── Internal ─────────────────────────────────────────────────────────

    def _new_code(self) -> str:
        code = self._code_factory().strip().upper()
        while code in self._rooms:
            code = random_room_code()
        return code

    def _name(self, client_id: str, requested: str) -> str:
        return requested or self._names.get(client_id, "Guest")

    def _emit(self, client_id: str, message: object) -> None:
        if self._send is None:
            raise RuntimeError("RoomServer is not attached to a transport")
        self._send(client_id, message.EVENT, message.to_payload())  # type: ignore[attr-defined]
