"""Client side of the room protocol.

:class:`PeerSyncChannel` turns transport events into typed Qt signals
and stamps outbound in-game messages with a per-room sequence number.
It never touches session state; the session decides what each signal
means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from chessarena.core.enums import Color
from chessarena.core.move import Move
from chessarena.core.position import Position
from chessarena.errors import ProtocolError
from chessarena.game.clock import ClockSnapshot, format_clock
from chessarena.net import protocol
from chessarena.net.protocol import Payload
from chessarena.net.transport import Transport

_LOGGER = logging.getLogger(__name__)


@dataclass
class RoomHandle:
    """The room this client currently plays in."""

    room_id: str
    local_id: str
    opponent_id: str
    local_side: Color
    opponent_name: str
    time_allotment: int  # seconds per side
    outbound_seq: int = 0
    inbound_seq: int = 0

    def next_seq(self) -> int:
        self.outbound_seq += 1
        return self.outbound_seq


@dataclass(frozen=True, slots=True)
class MatchInfo:
    """What a session needs to know to start a remote game."""

    room_id: str
    local_side: Color
    opponent_name: str
    time_allotment: int


class PeerSyncChannel(QObject):
    """Room lifecycle plus ordered, de-duplicated in-game messaging."""

    room_created = pyqtSignal(str)
    match_made = pyqtSignal(object)  # MatchInfo
    state_synced = pyqtSignal(object)  # protocol.SyncState
    chat_received = pyqtSignal(object)  # protocol.Chat
    result_reported = pyqtSignal(object)  # protocol.ReportResult
    protocol_error = pyqtSignal(object)  # ProtocolError

    def __init__(self, transport: Transport, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._transport = transport
        self._room: RoomHandle | None = None
        self._pending_room_id: str | None = None
        self._awaiting_match = False

        transport.subscribe(protocol.ROOM_CREATED, self._on_room_created)
        transport.subscribe(protocol.MATCH_MADE, self._on_match_made)
        transport.subscribe(protocol.SYNC_STATE_RELAYED, self._on_sync)
        transport.subscribe(protocol.RECEIVE_MESSAGE, self._on_chat)
        transport.subscribe(protocol.GAME_OVER_RELAYED, self._on_result)
        transport.subscribe(protocol.ERROR, self._on_error)

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def room(self) -> RoomHandle | None:
        return self._room

    @property
    def pending_room_id(self) -> str | None:
        return self._pending_room_id

    @property
    def is_awaiting_match(self) -> bool:
        return self._awaiting_match

    @property
    def client_id(self) -> str:
        return self._transport.client_id

    # ── Lifecycle requests ───────────────────────────────────────────────

    def register_name(self, name: str) -> None:
        self._send(protocol.RegisterName(name))

    def create_room(self, name: str, minutes: int) -> None:
        self._begin_wait()
        self._send(protocol.CreateRoom(name, minutes))

    def join_room(self, code: str, name: str) -> None:
        self._begin_wait()
        self._send(protocol.JoinRoom(code.strip().upper(), name))

    def find_random_match(self, minutes: int, name: str) -> None:
        self._begin_wait()
        self._send(protocol.RequestRandomMatch(name, minutes))

    def leave(self) -> None:
        """Abandon the current room or pending request.

        Purely local from this side's point of view: anything that still
        arrives for the old room is ignored.
        """
        room_id = self._room.room_id if self._room else self._pending_room_id
        if self._room is not None or self._awaiting_match:
            self._send(protocol.LeaveRoom(room_id))
        self._room = None
        self._pending_room_id = None
        self._awaiting_match = False

    # ── In-game messages ─────────────────────────────────────────────────

    def send_sync(
        self,
        position: Position,
        clock: ClockSnapshot | None,
        pgn: str,
        move: Move | None = None,
    ) -> None:
        room = self._require_room()
        self._send(
            protocol.SyncState(
                room_id=room.room_id,
                seq=room.next_seq(),
                fen=position.fen,
                white_time=format_clock(clock.white_remaining) if clock else "",
                black_time=format_clock(clock.black_remaining) if clock else "",
                pgn=pgn,
                move=move.uci if move is not None else None,
            )
        )

    def send_chat(self, text: str, sender: str) -> None:
        room = self._require_room()
        self._send(protocol.Chat(room.room_id, room.next_seq(), text, sender))

    def report_result(self, outcome: str, reason: str, winner: Color | None) -> None:
        room = self._require_room()
        self._send(
            protocol.ReportResult(room.room_id, room.next_seq(), outcome, reason, winner)
        )

    # ── Inbound ──────────────────────────────────────────────────────────

    def _on_room_created(self, payload: Payload) -> None:
        msg = self._decode(protocol.RoomCreated, payload)
        if msg is None or not self._awaiting_match:
            return
        self._pending_room_id = msg.room_id
        self.room_created.emit(msg.room_id)

    def _on_match_made(self, payload: Payload) -> None:
        msg = self._decode(protocol.MatchMade, payload)
        if msg is None:
            return
        if not self._awaiting_match:
            _LOGGER.debug("Ignoring match %s: not waiting for one", msg.room_id)
            return
        if self._pending_room_id is not None and msg.room_id != self._pending_room_id:
            _LOGGER.debug("Ignoring match %s: waiting in %s", msg.room_id, self._pending_room_id)
            return
        local_side = msg.side_of(self.client_id)
        if local_side is None:
            self._fail(ProtocolError("Match does not include this client", before_match=True))
            return

        self._room = RoomHandle(
            room_id=msg.room_id,
            local_id=self.client_id,
            opponent_id=msg.black_id if local_side == Color.WHITE else msg.white_id,
            local_side=local_side,
            opponent_name=msg.name_of(local_side.opposite),
            time_allotment=msg.time_allotment,
        )
        self._pending_room_id = None
        self._awaiting_match = False
        self.match_made.emit(
            MatchInfo(
                room_id=msg.room_id,
                local_side=local_side,
                opponent_name=self._room.opponent_name,
                time_allotment=msg.time_allotment,
            )
        )

    def _on_sync(self, payload: Payload) -> None:
        msg = self._decode(protocol.SyncState, payload)
        if msg is not None and self._accept_in_game(msg.room_id, msg.seq):
            self.state_synced.emit(msg)

    def _on_chat(self, payload: Payload) -> None:
        msg = self._decode(protocol.Chat, payload)
        if msg is not None and self._accept_in_game(msg.room_id, msg.seq):
            self.chat_received.emit(msg)

    def _on_result(self, payload: Payload) -> None:
        msg = self._decode(protocol.ReportResult, payload)
        if msg is not None and self._accept_in_game(msg.room_id, msg.seq):
            self.result_reported.emit(msg)

    def _on_error(self, payload: Payload) -> None:
        msg = self._decode(protocol.ErrorMessage, payload)
        if msg is None:
            return
        before_match = self._room is None
        if before_match:
            self._pending_room_id = None
            self._awaiting_match = False
        self._fail(ProtocolError(msg.message, before_match=before_match))

    # ── Internal ─────────────────────────────────────────────────────────

    def _accept_in_game(self, room_id: str, seq: int) -> bool:
        room = self._room
        if room is None or room_id != room.room_id:
            _LOGGER.debug("Dropping message for stale room %s", room_id)
            return False
        if seq <= room.inbound_seq:
            _LOGGER.debug("Dropping duplicate/out-of-date message seq=%d", seq)
            return False
        room.inbound_seq = seq
        return True

    def _decode(self, message_cls: Any, payload: Payload) -> Any:
        try:
            return message_cls.from_payload(payload)
        except ProtocolError as exc:
            self._fail(
                ProtocolError(
                    f"Malformed {message_cls.EVENT}: {exc}",
                    before_match=self._room is None,
                )
            )
            return None

    def _fail(self, error: ProtocolError) -> None:
        _LOGGER.warning("Peer protocol error: %s", error)
        self.protocol_error.emit(error)

    def _begin_wait(self) -> None:
        self._room = None
        self._pending_room_id = None
        self._awaiting_match = True

    def _require_room(self) -> RoomHandle:
        if self._room is None:
            raise ProtocolError("Not in a room")
        return self._room

    def _send(self, message: object) -> None:
        self._transport.emit(message.EVENT, message.to_payload())  # type: ignore[attr-defined]
