"""Wire messages of the room protocol.

Every message is a named event carrying a JSON-compatible ``dict``.
Decoding is strict: a payload with missing or mistyped fields raises
:class:`~chessarena.errors.ProtocolError` instead of producing a
half-filled message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from chessarena.core.enums import Color
from chessarena.errors import ProtocolError

Payload = dict[str, Any]

# ── Event names ──────────────────────────────────────────────────────────────

REGISTER_NAME = "register_name"
CREATE_ROOM = "create_room"
ROOM_CREATED = "room_created"
JOIN_ROOM = "join_room"
WANT_TO_PLAY = "want_to_play"
MATCH_MADE = "match_made"
LEAVE_ROOM = "leave_room"
SYNC_STATE = "sync_state"
SYNC_STATE_RELAYED = "sync_state_from_server"
SEND_MESSAGE = "send_message"
RECEIVE_MESSAGE = "receive_message"
UPDATE_GAME_RESULT = "update_game_result"
GAME_OVER_RELAYED = "game_over_from_server"
ERROR = "error"

# Client event -> event name the other seat receives.
RELAYED_EVENTS: dict[str, str] = {
    SYNC_STATE: SYNC_STATE_RELAYED,
    SEND_MESSAGE: RECEIVE_MESSAGE,
    UPDATE_GAME_RESULT: GAME_OVER_RELAYED,
}


def _field(payload: Payload, key: str, kind: type | tuple[type, ...]) -> Any:
    if not isinstance(payload, dict):
        raise ProtocolError(f"Payload must be an object, got {type(payload).__name__}")
    if key not in payload:
        raise ProtocolError(f"Missing field {key!r}")
    value = payload[key]
    # bool is an int subclass; no field is boolean.
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ProtocolError(f"Field {key!r} has the wrong type")
    return value


def _optional(payload: Payload, key: str, kind: type | tuple[type, ...]) -> Any:
    if payload.get(key) is None:
        return None
    return _field(payload, key, kind)


def _side_name(color: Color | None) -> str | None:
    return None if color is None else color.name.capitalize()


def _parse_side(value: str | None) -> Color | None:
    if value is None:
        return None
    try:
        return Color[value.upper()]
    except KeyError as exc:
        raise ProtocolError(f"Unknown side {value!r}") from exc


# ── Lifecycle messages ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RegisterName:
    EVENT: ClassVar[str] = REGISTER_NAME

    player_name: str

    def to_payload(self) -> Payload:
        return {"playerName": self.player_name}

    @classmethod
    def from_payload(cls, payload: Payload) -> RegisterName:
        return cls(_field(payload, "playerName", str))


@dataclass(frozen=True, slots=True)
class CreateRoom:
    EVENT: ClassVar[str] = CREATE_ROOM

    player_name: str
    minutes: int

    def to_payload(self) -> Payload:
        return {"playerName": self.player_name, "timeControl": self.minutes}

    @classmethod
    def from_payload(cls, payload: Payload) -> CreateRoom:
        return cls(_field(payload, "playerName", str), _minutes(payload, "timeControl"))


@dataclass(frozen=True, slots=True)
class RoomCreated:
    EVENT: ClassVar[str] = ROOM_CREATED

    room_id: str

    def to_payload(self) -> Payload:
        return {"roomId": self.room_id}

    @classmethod
    def from_payload(cls, payload: Payload) -> RoomCreated:
        return cls(_field(payload, "roomId", str))


@dataclass(frozen=True, slots=True)
class JoinRoom:
    EVENT: ClassVar[str] = JOIN_ROOM

    room_id: str
    player_name: str

    def to_payload(self) -> Payload:
        return {"roomId": self.room_id, "playerName": self.player_name}

    @classmethod
    def from_payload(cls, payload: Payload) -> JoinRoom:
        return cls(_field(payload, "roomId", str), _field(payload, "playerName", str))


@dataclass(frozen=True, slots=True)
class RequestRandomMatch:
    EVENT: ClassVar[str] = WANT_TO_PLAY

    player_name: str
    minutes: int

    def to_payload(self) -> Payload:
        return {"playerName": self.player_name, "timer": self.minutes}

    @classmethod
    def from_payload(cls, payload: Payload) -> RequestRandomMatch:
        return cls(_field(payload, "playerName", str), _minutes(payload, "timer"))


@dataclass(frozen=True, slots=True)
class LeaveRoom:
    EVENT: ClassVar[str] = LEAVE_ROOM

    room_id: str | None = None

    def to_payload(self) -> Payload:
        return {"roomId": self.room_id}

    @classmethod
    def from_payload(cls, payload: Payload) -> LeaveRoom:
        return cls(_optional(payload, "roomId", str))


@dataclass(frozen=True, slots=True)
class MatchMade:
    """Pairing announcement; identical for both seats."""

    EVENT: ClassVar[str] = MATCH_MADE

    room_id: str
    white_id: str
    black_id: str
    white_name: str
    black_name: str
    minutes: int

    @property
    def time_allotment(self) -> int:
        """Seconds per side."""
        return self.minutes * 60

    def side_of(self, client_id: str) -> Color | None:
        if client_id == self.white_id:
            return Color.WHITE
        if client_id == self.black_id:
            return Color.BLACK
        return None

    def name_of(self, color: Color) -> str:
        return self.white_name if color == Color.WHITE else self.black_name

    def to_payload(self) -> Payload:
        return {
            "roomId": self.room_id,
            "white": {"id": self.white_id},
            "black": {"id": self.black_id},
            "whiteName": self.white_name,
            "blackName": self.black_name,
            "time": self.minutes,
        }

    @classmethod
    def from_payload(cls, payload: Payload) -> MatchMade:
        white = _field(payload, "white", dict)
        black = _field(payload, "black", dict)
        return cls(
            room_id=_field(payload, "roomId", str),
            white_id=_field(white, "id", str),
            black_id=_field(black, "id", str),
            white_name=_field(payload, "whiteName", str),
            black_name=_field(payload, "blackName", str),
            minutes=_minutes(payload, "time"),
        )


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    EVENT: ClassVar[str] = ERROR

    message: str

    def to_payload(self) -> Payload:
        return {"message": self.message}

    @classmethod
    def from_payload(cls, payload: Payload) -> ErrorMessage:
        return cls(_field(payload, "message", str))


# ── In-game messages ─────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SyncState:
    """The mover's authoritative position after its move."""

    EVENT: ClassVar[str] = SYNC_STATE

    room_id: str
    seq: int
    fen: str
    white_time: str
    black_time: str
    pgn: str
    move: str | None = None  # UCI of the move that produced ``fen``

    def to_payload(self) -> Payload:
        return {
            "roomId": self.room_id,
            "seq": self.seq,
            "fen": self.fen,
            "turn": self.fen.split()[1] if len(self.fen.split()) > 1 else None,
            "whiteTime": self.white_time,
            "blackTime": self.black_time,
            "pgn": self.pgn,
            "move": self.move,
        }

    @classmethod
    def from_payload(cls, payload: Payload) -> SyncState:
        fen = _field(payload, "fen", str)
        if len(fen.split()) < 2:
            raise ProtocolError(f"Malformed FEN in sync: {fen!r}")
        return cls(
            room_id=_field(payload, "roomId", str),
            seq=_field(payload, "seq", int),
            fen=fen,
            white_time=str(_field(payload, "whiteTime", (str, int))),
            black_time=str(_field(payload, "blackTime", (str, int))),
            pgn=_optional(payload, "pgn", str) or "",
            move=_optional(payload, "move", str),
        )


@dataclass(frozen=True, slots=True)
class Chat:
    EVENT: ClassVar[str] = SEND_MESSAGE

    room_id: str
    seq: int
    text: str
    sender: str

    def to_payload(self) -> Payload:
        return {"roomId": self.room_id, "seq": self.seq, "text": self.text, "sender": self.sender}

    @classmethod
    def from_payload(cls, payload: Payload) -> Chat:
        return cls(
            room_id=_field(payload, "roomId", str),
            seq=_field(payload, "seq", int),
            text=_field(payload, "text", str),
            sender=_field(payload, "sender", str),
        )


@dataclass(frozen=True, slots=True)
class ReportResult:
    """Game end announced by one seat (resignation, flag fall, ...)."""

    EVENT: ClassVar[str] = UPDATE_GAME_RESULT

    room_id: str
    seq: int
    outcome: str  # "win" or "draw"
    reason: str
    winner: Color | None

    def to_payload(self) -> Payload:
        return {
            "roomId": self.room_id,
            "seq": self.seq,
            "result": self.outcome,
            "reason": self.reason,
            "winner": _side_name(self.winner),
        }

    @classmethod
    def from_payload(cls, payload: Payload) -> ReportResult:
        outcome = _field(payload, "result", str)
        if outcome not in ("win", "draw"):
            raise ProtocolError(f"Unknown result {outcome!r}")
        winner = _parse_side(_optional(payload, "winner", str))
        if (outcome == "win") != (winner is not None):
            raise ProtocolError("Result and winner disagree")
        return cls(
            room_id=_field(payload, "roomId", str),
            seq=_field(payload, "seq", int),
            outcome=outcome,
            reason=_optional(payload, "reason", str) or "",
            winner=winner,
        )


def _minutes(payload: Payload, key: str) -> int:
    raw = _field(payload, key, (int, str))
    try:
        minutes = int(raw)
    except ValueError as exc:
        raise ProtocolError(f"Field {key!r} is not a number of minutes") from exc
    if minutes <= 0:
        raise ProtocolError(f"Field {key!r} must be positive")
    return minutes
