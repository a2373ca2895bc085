"""SessionController — the state machine that owns a game session.

Coordinates: PositionLedger, ClockPair, the rules engine, and the two
asynchronous collaborators (engine channel, peer channel).  It is the
single writer of session state: collaborators only deliver events,
which are interpreted here one at a time on the owning thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from chessarena.analysis.live import LiveAnalysis
from chessarena.analysis.models import LiveEvaluation
from chessarena.core.enums import Color, GameResult, TerminalState
from chessarena.core.move import PROMOTION_PIECES, Move
from chessarena.core.position import Position
from chessarena.core.rules import ChessRules, RulesEngine
from chessarena.engine.search import (
    BestMove,
    EngineOptions,
    EngineRequest,
    NoMove,
    PartialEvaluation,
    clamp_depth,
)
from chessarena.errors import ChessArenaError, EngineFault, IllegalMove, ProtocolError
from chessarena.game.clock import ClockPair, ClockSnapshot, parse_clock
from chessarena.game.interfaces import (
    GameEndReason,
    GameOutcome,
    SessionMode,
    SessionPhase,
    TimeControl,
)
from chessarena.game.ledger import MoveRecord, PositionLedger
from chessarena.game.ticker import ClockTicker, QtClockTicker
from chessarena.net.verify import RevalidateWithRules, SyncVerifier, TrustMover
from chessarena.settings import SessionSettings

if TYPE_CHECKING:
    from chessarena.engine.channel import EngineChannel
    from chessarena.net.peer_sync import MatchInfo, PeerSyncChannel
    from chessarena.net.protocol import Chat, ReportResult, SyncState

_LOGGER = logging.getLogger(__name__)

# ── Event definitions ────────────────────────────────────────────────────────

PhaseCallback = Callable[[SessionPhase], None]
MoveCallback = Callable[[MoveRecord], None]
CursorCallback = Callable[[int, Position], None]  # index, displayed position
ClockCallback = Callable[[ClockSnapshot], None]
GameOverCallback = Callable[[GameOutcome], None]
FaultCallback = Callable[[ChessArenaError], None]
ChatCallback = Callable[["ChatLine"], None]
EvaluationCallback = Callable[[LiveEvaluation], None]
RoomCallback = Callable[[str], None]
EngineRequestCallback = Callable[[EngineRequest], None]


@dataclass
class SessionEvents:
    """Observable callbacks. Multiple handlers per event."""

    on_phase_changed: list[PhaseCallback] = field(default_factory=list)
    on_move: list[MoveCallback] = field(default_factory=list)
    on_cursor_moved: list[CursorCallback] = field(default_factory=list)
    on_clock: list[ClockCallback] = field(default_factory=list)
    on_game_over: list[GameOverCallback] = field(default_factory=list)
    on_fault: list[FaultCallback] = field(default_factory=list)
    on_chat: list[ChatCallback] = field(default_factory=list)
    on_evaluation: list[EvaluationCallback] = field(default_factory=list)
    on_room_created: list[RoomCallback] = field(default_factory=list)
    on_engine_request: list[EngineRequestCallback] = field(default_factory=list)


# ── Move submission results ──────────────────────────────────────────────────


class SubmitStatus(StrEnum):
    ACCEPTED = "accepted"
    PENDING_PROMOTION = "pending_promotion"
    REJECTED = "rejected"


class RejectReason(StrEnum):
    NOT_ACTIVE = "not_active"
    REVIEWING = "reviewing"
    NOT_YOUR_TURN = "not_your_turn"
    ILLEGAL = "illegal"
    NO_PENDING_PROMOTION = "no_pending_promotion"


@dataclass(frozen=True, slots=True)
class SubmitResult:
    status: SubmitStatus
    reason: RejectReason | None = None
    record: MoveRecord | None = None

    @property
    def accepted(self) -> bool:
        return self.status == SubmitStatus.ACCEPTED

    @classmethod
    def rejected(cls, reason: RejectReason) -> SubmitResult:
        return cls(SubmitStatus.REJECTED, reason)


@dataclass(frozen=True, slots=True)
class PendingPromotion:
    """A pawn move to the last rank waiting for its promotion piece."""

    from_sq: str
    to_sq: str


@dataclass(frozen=True, slots=True)
class ChatLine:
    sender: str
    text: str
    is_local: bool


_TERMINAL_REASONS: dict[TerminalState, GameEndReason] = {
    TerminalState.CHECKMATE: GameEndReason.CHECKMATE,
    TerminalState.STALEMATE: GameEndReason.STALEMATE,
    TerminalState.DRAW: GameEndReason.DRAW,
    TerminalState.INSUFFICIENT_MATERIAL: GameEndReason.INSUFFICIENT_MATERIAL,
}

# Reason strings used on the wire by ``update_game_result``.
_WIRE_REASONS: dict[GameEndReason, str] = {
    GameEndReason.RESIGNATION: "Resignation",
    GameEndReason.TIME_EXPIRED: "Timeout",
}


# ── Controller ───────────────────────────────────────────────────────────────


class SessionController:
    """Owns one game session: whose turn it is, history, clocks, outcome.

    Collaborators are passed in and owned by the session; nothing is
    shared through module globals, so several sessions can coexist
    (two players of one room under test, for instance).

    Args:
        rules: Move legality and notation.
        engine: Search process channel, needed for ``VsEngine`` games and
            live evaluation.
        peer: Room-protocol channel, needed for ``VsRemote`` games.
        ticker: One-second tick source for the clocks.
        settings: Defaults for names, time allotments and engine limits.
        verifier: Acceptance policy for positions received from the peer.
    """

    def __init__(
        self,
        rules: RulesEngine | None = None,
        *,
        engine: EngineChannel | None = None,
        peer: PeerSyncChannel | None = None,
        ticker: ClockTicker | None = None,
        settings: SessionSettings | None = None,
        verifier: SyncVerifier | None = None,
    ) -> None:
        self._rules: RulesEngine = rules or ChessRules()
        self._settings = settings or SessionSettings()
        self._engine = engine
        self._peer = peer
        self._ticker: ClockTicker = ticker or QtClockTicker(self._settings.clock_tick_ms)
        self._ticker.bind(self._on_tick)
        if verifier is None:
            verifier = (
                RevalidateWithRules(self._rules)
                if self._settings.verify_peer_positions
                else TrustMover()
            )
        self._verifier = verifier
        self.events = SessionEvents()

        self._phase = SessionPhase.MENU
        self._mode: SessionMode | None = None
        self._local_side: Color | None = None
        self._ledger = PositionLedger(self._rules.initial_position())
        self._clock: ClockPair | None = None
        self._outcome: GameOutcome | None = None
        self._pending_promotion: PendingPromotion | None = None
        self._player_name = self._settings.player_name
        self._opponent_name: str | None = None
        self._room_code: str | None = None
        self._chat: list[ChatLine] = []

        self._engine_depth = clamp_depth(self._settings.engine_difficulty)
        self._engine_request: EngineRequest | None = None
        self._engine_retries_left = self._settings.engine_retry_budget
        self._engine_failed = False
        self._dispatching = False
        self._dispatch_failure: str | None = None
        self._play_eval = LiveAnalysis(lines=1)
        self._analysis: LiveAnalysis | None = None

        if engine is not None:
            engine.best_move.connect(self._on_engine_best_move)
            engine.no_move.connect(self._on_engine_no_move)
            engine.partial_evaluation.connect(self._on_engine_partial)
            engine.fault.connect(self._on_engine_fault)
        if peer is not None:
            peer.room_created.connect(self._on_room_created)
            peer.match_made.connect(self._on_match_made)
            peer.state_synced.connect(self._on_peer_sync)
            peer.chat_received.connect(self._on_peer_chat)
            peer.result_reported.connect(self._on_peer_result)
            peer.protocol_error.connect(self._on_peer_error)

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def mode(self) -> SessionMode | None:
        return self._mode

    @property
    def local_side(self) -> Color | None:
        return self._local_side

    @property
    def ledger(self) -> PositionLedger:
        return self._ledger

    @property
    def clock(self) -> ClockPair | None:
        return self._clock

    @property
    def outcome(self) -> GameOutcome | None:
        return self._outcome

    @property
    def pending_promotion(self) -> PendingPromotion | None:
        return self._pending_promotion

    @property
    def opponent_name(self) -> str | None:
        return self._opponent_name

    @property
    def player_name(self) -> str:
        return self._player_name

    @property
    def room_code(self) -> str | None:
        return self._room_code

    @property
    def chat_log(self) -> tuple[ChatLine, ...]:
        return tuple(self._chat)

    @property
    def engine_request(self) -> EngineRequest | None:
        """The engine search whose answer the session is waiting for."""
        return self._engine_request

    @property
    def is_engine_thinking(self) -> bool:
        return self._engine_request is not None

    @property
    def engine_failed(self) -> bool:
        return self._engine_failed

    @property
    def analysis_enabled(self) -> bool:
        return self._analysis is not None

    def current_phase(self) -> SessionPhase:
        return self._phase

    def current_position(self) -> Position:
        """Position under the review cursor (the live one when following)."""
        return self._ledger.displayed

    def live_position(self) -> Position:
        return self._ledger.live

    def pgn(self) -> str:
        """Move list of the current game in portable notation."""
        return self._rules.to_portable_notation(self._ledger.moves, self._ledger.start)

    # ── Starting games ───────────────────────────────────────────────────

    def start_local(
        self,
        time_control: TimeControl | None = None,
        starting_fen: str | None = None,
    ) -> None:
        """Both sides are played from this session (pass and play)."""
        start = self._rules.initial_position(starting_fen)
        self._abandon_current()
        self._begin_game(SessionMode.LOCAL, None, start, time_control)

    def start_vs_engine(
        self,
        local_side: Color,
        difficulty: int | None = None,
        *,
        time_control: TimeControl | None = None,
        starting_fen: str | None = None,
    ) -> None:
        """Play *local_side* against the search process at depth *difficulty*."""
        start = self._rules.initial_position(starting_fen)
        self._abandon_current()
        self.disable_analysis()
        self._engine_depth = clamp_depth(
            self._settings.engine_difficulty if difficulty is None else difficulty
        )
        if self._engine is not None:
            self._engine.configure(EngineOptions(multipv=1))
        self._begin_game(SessionMode.VS_ENGINE, local_side, start, time_control)

    def load_game(self, pgn: str) -> None:
        """Start a local, untimed session replaying a recorded game.

        Raises:
            IllegalMove: if *pgn* cannot be decoded.
        """
        game = self._rules.from_portable_notation(pgn)
        self._abandon_current()
        self._begin_game(SessionMode.LOCAL, None, game.start, None)
        for move in game.moves:
            if self._phase == SessionPhase.GAME_OVER:
                break
            self._commit(move)

    def create_room(self, name: str | None = None, minutes: int | None = None) -> bool:
        peer = self._begin_search(name)
        if peer is None:
            return False
        peer.create_room(self._player_name, minutes or self._settings.default_minutes)
        return True

    def join_room(self, code: str, name: str | None = None) -> bool:
        peer = self._begin_search(name)
        if peer is None:
            return False
        peer.join_room(code, self._player_name)
        return True

    def find_random_match(
        self, minutes: int | None = None, name: str | None = None
    ) -> bool:
        peer = self._begin_search(name)
        if peer is None:
            return False
        peer.find_random_match(minutes or self._settings.default_minutes, self._player_name)
        return True

    def cancel_search(self) -> None:
        """Give up waiting for a room partner and return to the menu."""
        if self._phase != SessionPhase.SEARCHING:
            return
        if self._peer is not None:
            self._peer.leave()
        self._room_code = None
        self._set_phase(SessionPhase.MENU)

    def restart(self) -> None:
        """Drop the current game entirely and go back to the menu."""
        self._abandon_current()
        self.disable_analysis()
        self._mode = None
        self._local_side = None
        self._clock = None
        self._outcome = None
        self._opponent_name = None
        self._chat.clear()
        self._ledger.reset(self._rules.initial_position())
        self._set_phase(SessionPhase.MENU, force=True)

    def shutdown(self) -> None:
        """Release the collaborators owned by this session."""
        self._abandon_current()
        if self._engine is not None:
            self._engine.shutdown()

    # ── Moves ────────────────────────────────────────────────────────────

    def submit_move(
        self, from_sq: str, to_sq: str, promotion: str | None = None
    ) -> SubmitResult:
        """Submit a move for the local actor.

        Pawn moves to the last rank without *promotion* are parked as a
        :class:`PendingPromotion` until :meth:`choose_promotion` is called.
        """
        refusal = self._check_can_move()
        if refusal is not None:
            return SubmitResult.rejected(refusal)

        try:
            move = Move(from_sq, to_sq, promotion)
        except ValueError:
            return SubmitResult.rejected(RejectReason.ILLEGAL)

        live = self._ledger.live
        if promotion is None and self._rules.needs_promotion(live, from_sq, to_sq):
            self._pending_promotion = PendingPromotion(from_sq, to_sq)
            return SubmitResult(SubmitStatus.PENDING_PROMOTION)
        return self._commit_local(move)

    def choose_promotion(self, piece: str) -> SubmitResult:
        """Complete the pending promotion with *piece* (``q``/``r``/``b``/``n``)."""
        pending = self._pending_promotion
        if pending is None:
            return SubmitResult.rejected(RejectReason.NO_PENDING_PROMOTION)
        refusal = self._check_can_move()
        if refusal is not None:
            return SubmitResult.rejected(refusal)
        if piece not in PROMOTION_PIECES:
            return SubmitResult.rejected(RejectReason.ILLEGAL)
        return self._commit_local(Move(pending.from_sq, pending.to_sq, piece))

    def cancel_promotion(self) -> None:
        self._pending_promotion = None

    def resign(self, side: Color | None = None) -> bool:
        """Resign for *side* (default: the local side, or the side to move)."""
        if not self._phase.is_in_game:
            return False
        if side is None:
            side = self._local_side or self._ledger.live.side_to_move
        winner = side.opposite
        outcome = GameOutcome(GameResult.win_for(winner), GameEndReason.RESIGNATION, winner)
        self._report_to_peer(outcome)
        self._finish(outcome)
        return True

    def retry_engine(self) -> bool:
        """Ask the engine again after a surfaced fault."""
        if self._mode != SessionMode.VS_ENGINE or not self._phase.is_in_game:
            return False
        self._engine_failed = False
        self._engine_retries_left = self._settings.engine_retry_budget
        if self._is_engine_turn():
            self._request_engine_move()
        return True

    # ── History navigation ───────────────────────────────────────────────

    def seek_history(self, index: int) -> Position:
        """Show position *index* (clamped); leaving the tip pauses the game."""
        if self._phase in (SessionPhase.MENU, SessionPhase.SEARCHING):
            return self._ledger.displayed
        position = self._ledger.seek(index)
        if self._phase.is_in_game:
            at_tip = self._ledger.is_at_live_tip()
            self._set_phase(SessionPhase.ACTIVE if at_tip else SessionPhase.REVIEWING)
        self._sync_clock_running()
        for cb in self.events.on_cursor_moved:
            cb(self._ledger.cursor, position)
        self._refresh_analysis()
        return position

    def return_to_live(self) -> Position:
        return self.seek_history(self._ledger.live_tip())

    def step_back(self) -> Position:
        return self.seek_history(self._ledger.cursor - 1)

    def step_forward(self) -> Position:
        return self.seek_history(self._ledger.cursor + 1)

    # ── Chat ─────────────────────────────────────────────────────────────

    def send_chat(self, text: str) -> bool:
        text = text.strip()
        if not text or self._mode != SessionMode.VS_REMOTE or self._peer is None:
            return False
        if self._peer.room is None:
            return False
        self._peer.send_chat(text, self._player_name)
        self._add_chat(ChatLine(self._player_name, text, is_local=True))
        return True

    # ── Live evaluation ──────────────────────────────────────────────────

    def enable_analysis(self, lines: int | None = None, depth: int | None = None) -> bool:
        """Stream engine evaluations of the displayed position.

        Not available while the engine is the opponent: the channel only
        serves one request at a time.
        """
        if self._engine is None or self._mode == SessionMode.VS_ENGINE:
            return False
        lines = lines or self._settings.analysis_lines
        self._analysis = LiveAnalysis(
            lines=lines, depth=clamp_depth(depth or self._settings.analysis_depth)
        )
        self._engine.configure(EngineOptions(multipv=lines))
        self._refresh_analysis()
        return True

    def disable_analysis(self) -> None:
        if self._analysis is None:
            return
        self._analysis = None
        if self._engine is not None:
            self._engine.cancel()
            self._engine.configure(EngineOptions(multipv=1))

    # ── Internal: game lifecycle ─────────────────────────────────────────

    def _begin_game(
        self,
        mode: SessionMode,
        local_side: Color | None,
        start: Position,
        time_control: TimeControl | None,
    ) -> None:
        self._mode = mode
        self._local_side = local_side
        self._outcome = None
        self._pending_promotion = None
        self._engine_failed = False
        self._engine_retries_left = self._settings.engine_retry_budget
        self._ledger.reset(start)

        if time_control is not None and not time_control.is_unlimited:
            self._clock = ClockPair(time_control)
            self._clock.start(start.side_to_move)
        else:
            self._clock = None

        self._set_phase(SessionPhase.ACTIVE, force=True)
        self._refresh_analysis()
        if self._is_engine_turn():
            self._request_engine_move()

    def _begin_search(self, name: str | None) -> PeerSyncChannel | None:
        if self._peer is None:
            self._emit_fault(ProtocolError("No peer connection", before_match=True))
            return None
        self._abandon_current()
        self._mode = None
        self._local_side = None
        self._opponent_name = None
        self._room_code = None
        self._chat.clear()
        if name:
            self._player_name = name
        self._set_phase(SessionPhase.SEARCHING)
        return self._peer

    def _abandon_current(self) -> None:
        """Stop everything that belongs to the game being left."""
        self._cancel_engine_request()
        self._play_eval.clear()
        if self._peer is not None and (
            self._peer.room is not None or self._peer.is_awaiting_match
        ):
            self._peer.leave()
        self._ticker.stop()
        if self._clock is not None:
            self._clock.pause()

    def _finish(self, outcome: GameOutcome) -> None:
        self._outcome = outcome
        self._pending_promotion = None
        self._cancel_engine_request()
        if self._clock is not None:
            self._clock.pause()
        self._set_phase(SessionPhase.GAME_OVER)
        _LOGGER.info("Game over: %s (%s)", outcome.result.name, outcome.reason)
        for cb in self.events.on_game_over:
            cb(outcome)

    # ── Internal: moves ──────────────────────────────────────────────────

    def _check_can_move(self) -> RejectReason | None:
        if self._phase == SessionPhase.REVIEWING:
            return RejectReason.REVIEWING
        if self._phase != SessionPhase.ACTIVE:
            return RejectReason.NOT_ACTIVE
        side = self._ledger.live.side_to_move
        if self._mode == SessionMode.LOCAL:
            return None
        if self._mode == SessionMode.VS_ENGINE and self._engine_failed:
            return None
        if side != self._local_side:
            return RejectReason.NOT_YOUR_TURN
        return None

    def _commit_local(self, move: Move) -> SubmitResult:
        try:
            record = self._commit(move)
        except IllegalMove:
            return SubmitResult.rejected(RejectReason.ILLEGAL)
        self._pending_promotion = None

        if self._mode == SessionMode.VS_REMOTE and self._peer is not None:
            clock = self._clock.snapshot() if self._clock is not None else None
            self._peer.send_sync(record.position_after, clock, self.pgn(), record.move)
        if self._phase.is_in_game and self._is_engine_turn():
            self._request_engine_move()
        return SubmitResult(SubmitStatus.ACCEPTED, record=record)

    def _commit(self, move: Move) -> MoveRecord:
        """Validate and apply *move* on the live position.

        Raises:
            IllegalMove: before anything was mutated.
        """
        live = self._ledger.live
        san = self._rules.san(live, move)
        after = self._rules.apply_move(live, move)
        record = self._append_at_tip(move.with_san(san), after)
        if self._clock is not None:
            self._clock.set_active(after.side_to_move)
        self._after_append(record, mover=live.side_to_move)
        return record

    def _append_at_tip(self, move: Move, after: Position) -> MoveRecord:
        """Append on the live tip, keeping a review cursor where it was."""
        if self._ledger.is_at_live_tip():
            return self._ledger.append(move, after)
        cursor = self._ledger.cursor
        self._ledger.seek(self._ledger.live_tip())
        record = self._ledger.append(move, after)
        self._ledger.seek(cursor)
        return record

    def _after_append(self, record: MoveRecord, mover: Color) -> None:
        for cb in self.events.on_move:
            cb(record)
        terminal = self._rules.terminal_state(
            record.position_after, self._ledger.positions[: record.ply]
        )
        if terminal != TerminalState.NONE:
            self._finish(_outcome_for(terminal, mover))
            return
        self._refresh_analysis()

    # ── Internal: clock ──────────────────────────────────────────────────

    def _sync_clock_running(self) -> None:
        clock = self._clock
        running = (
            clock is not None
            and self._phase == SessionPhase.ACTIVE
            and self._ledger.is_at_live_tip()
        )
        if running:
            assert clock is not None
            clock.resume()
            self._ticker.start()
            return
        self._ticker.stop()
        if clock is not None:
            clock.pause()

    def _on_tick(self) -> None:
        clock = self._clock
        if clock is None or self._phase != SessionPhase.ACTIVE:
            return
        expired = clock.tick()
        snapshot = clock.snapshot()
        for cb in self.events.on_clock:
            cb(snapshot)
        if expired is None:
            return
        winner = expired.side.opposite
        outcome = GameOutcome(GameResult.win_for(winner), GameEndReason.TIME_EXPIRED, winner)
        self._report_to_peer(outcome)
        self._finish(outcome)

    # ── Internal: engine ─────────────────────────────────────────────────

    def _is_engine_turn(self) -> bool:
        return (
            self._mode == SessionMode.VS_ENGINE
            and not self._engine_failed
            and self._phase.is_in_game
            and self._ledger.live.side_to_move != self._local_side
        )

    def _request_engine_move(self) -> None:
        engine = self._engine
        if engine is None:
            self._engine_failed = True
            self._emit_fault(EngineFault("No engine configured"))
            return
        self._engine_request = None
        request, failure = self._dispatch(engine, self._ledger.live, self._engine_depth)
        if failure is not None:
            self._handle_engine_failure(failure)
            return
        self._engine_request = request
        self._play_eval.begin(request)
        for cb in self.events.on_engine_request:
            cb(request)

    def _dispatch(
        self, engine: EngineChannel, position: Position, depth: int
    ) -> tuple[EngineRequest, str | None]:
        """Issue a search; also return any fault the channel raised meanwhile."""
        self._dispatching = True
        self._dispatch_failure = None
        try:
            request = engine.request(position, depth)
        finally:
            self._dispatching = False
        failure, self._dispatch_failure = self._dispatch_failure, None
        return request, failure

    def _cancel_engine_request(self) -> None:
        if self._engine_request is not None and self._engine is not None:
            self._engine.cancel()
        self._engine_request = None

    def _is_expected(self, request: EngineRequest) -> bool:
        expected = self._engine_request
        return (
            expected is not None
            and request.request_id == expected.request_id
            and request.is_for(self._ledger.live)
            and self._mode == SessionMode.VS_ENGINE
            and self._phase.is_in_game
        )

    def _on_engine_best_move(self, answer: BestMove) -> None:
        if not self._is_expected(answer.request):
            _LOGGER.debug("Dropping stale best move %s", answer.move)
            return
        self._engine_request = None
        try:
            self._commit(answer.move)
        except IllegalMove as exc:
            self._handle_engine_failure(f"Engine proposed an illegal move: {exc}")
            return
        self._engine_retries_left = self._settings.engine_retry_budget

    def _on_engine_no_move(self, answer: NoMove) -> None:
        if not self._is_expected(answer.request):
            _LOGGER.debug("Dropping stale no-move answer")
            return
        self._engine_request = None
        self._handle_engine_failure("Engine produced no move")

    def _on_engine_partial(self, update: PartialEvaluation) -> None:
        tracker = self._analysis if self._analysis is not None else self._play_eval
        snapshot = tracker.accept(update)
        if snapshot is None:
            return
        for cb in self.events.on_evaluation:
            cb(snapshot)

    def _on_engine_fault(self, request: EngineRequest | None, message: str) -> None:
        if self._dispatching:
            self._dispatch_failure = message
            return
        expected = self._engine_request
        if expected is not None and (request is None or request.request_id == expected.request_id):
            self._engine_request = None
            self._handle_engine_failure(message)
            return
        analysed = self._analysis.request if self._analysis is not None else None
        if analysed is not None and (request is None or request.request_id == analysed.request_id):
            self._analysis.clear()  # type: ignore[union-attr]
            self._emit_fault(EngineFault(message))
            return
        if request is None:
            self._emit_fault(EngineFault(message))
            return
        _LOGGER.debug("Dropping fault for stale request %d: %s", request.request_id, message)

    def _handle_engine_failure(self, message: str) -> None:
        if not self._is_engine_turn():
            return
        if self._engine_retries_left > 0:
            self._engine_retries_left -= 1
            _LOGGER.warning("Engine failed (%s); retrying", message)
            self._request_engine_move()
            return
        self._engine_request = None
        self._engine_failed = True
        self._emit_fault(EngineFault(message))

    def _refresh_analysis(self) -> None:
        analysis = self._analysis
        if analysis is None or self._engine is None:
            return
        position = self._ledger.displayed
        if analysis.request is not None and analysis.request.is_for(position):
            return
        request, failure = self._dispatch(self._engine, position, analysis.depth)
        if failure is not None:
            analysis.clear()
            self._emit_fault(EngineFault(failure))
            return
        analysis.begin(request)

    # ── Internal: peer ───────────────────────────────────────────────────

    def _on_room_created(self, code: str) -> None:
        if self._phase != SessionPhase.SEARCHING:
            return
        self._room_code = code
        for cb in self.events.on_room_created:
            cb(code)

    def _on_match_made(self, info: MatchInfo) -> None:
        if self._phase != SessionPhase.SEARCHING:
            _LOGGER.debug("Ignoring match %s outside of search", info.room_id)
            return
        self._opponent_name = info.opponent_name
        self._room_code = info.room_id
        self._begin_game(
            SessionMode.VS_REMOTE,
            info.local_side,
            self._rules.initial_position(),
            TimeControl(info.time_allotment),
        )

    def _on_peer_sync(self, message: SyncState) -> None:
        if self._mode != SessionMode.VS_REMOTE or not self._phase.is_in_game:
            _LOGGER.debug("Dropping sync outside of a remote game")
            return
        live = self._ledger.live
        refusal = self._verifier.verify(live, message)
        if refusal is not None:
            self._emit_fault(ProtocolError(f"Desynchronised: {refusal}"))
            return
        try:
            position = Position.from_fen(message.fen)
            move = self._synced_move(live, message)
        except (ValueError, IllegalMove) as exc:
            self._emit_fault(ProtocolError(f"Malformed sync: {exc}"))
            return

        record = self._append_at_tip(move, position)
        if self._clock is not None:
            clock = self._clock
            # Clocks only run down: a peer reading never refunds local time.
            for side, reported in (
                (Color.WHITE, message.white_time),
                (Color.BLACK, message.black_time),
            ):
                local = clock.remaining(side)
                clock.set_remaining(side, min(local, parse_clock(reported, local)))
            clock.set_active(position.side_to_move)
            snapshot = clock.snapshot()
            for cb in self.events.on_clock:
                cb(snapshot)
        self._after_append(record, mover=live.side_to_move)

    def _synced_move(self, live: Position, message: SyncState) -> Move:
        if message.move is not None:
            move = Move.from_uci(message.move)
        else:
            played = self._rules.from_portable_notation(message.pgn).moves
            if not played:
                raise ValueError("sync carries no move")
            move = played[-1]
        try:
            return move.with_san(self._rules.san(live, move))
        except IllegalMove:
            # The mover is authoritative; keep the record without SAN.
            return move

    def _on_peer_chat(self, message: Chat) -> None:
        if self._mode != SessionMode.VS_REMOTE:
            return
        self._add_chat(ChatLine(message.sender, message.text, is_local=False))

    def _on_peer_result(self, message: ReportResult) -> None:
        if not self._phase.is_in_game:
            return
        if message.outcome == "draw" or message.winner is None:
            outcome = GameOutcome(GameResult.DRAW, _reason_from_wire(message.reason))
        else:
            outcome = GameOutcome(
                GameResult.win_for(message.winner),
                _reason_from_wire(message.reason),
                message.winner,
            )
        self._finish(outcome)

    def _on_peer_error(self, error: ProtocolError) -> None:
        if self._phase == SessionPhase.SEARCHING:
            self._room_code = None
            self._set_phase(SessionPhase.MENU)
        self._emit_fault(error)

    def _report_to_peer(self, outcome: GameOutcome) -> None:
        if self._mode != SessionMode.VS_REMOTE or self._peer is None:
            return
        if self._peer.room is None:
            return
        self._peer.report_result(
            "draw" if outcome.winner is None else "win",
            _WIRE_REASONS.get(outcome.reason, outcome.reason.value),
            outcome.winner,
        )

    def _add_chat(self, line: ChatLine) -> None:
        self._chat.append(line)
        for cb in self.events.on_chat:
            cb(line)

    # ── Internal: events ─────────────────────────────────────────────────

    def _set_phase(self, phase: SessionPhase, *, force: bool = False) -> None:
        changed = phase != self._phase
        self._phase = phase
        self._sync_clock_running()
        if changed or force:
            for cb in self.events.on_phase_changed:
                cb(phase)

    def _emit_fault(self, error: ChessArenaError) -> None:
        _LOGGER.warning("%s: %s", type(error).__name__, error)
        for cb in self.events.on_fault:
            cb(error)


def _outcome_for(terminal: TerminalState, mover: Color) -> GameOutcome:
    reason = _TERMINAL_REASONS[terminal]
    if terminal == TerminalState.CHECKMATE:
        return GameOutcome(GameResult.win_for(mover), reason, mover)
    return GameOutcome(GameResult.DRAW, reason)


def _reason_from_wire(text: str) -> GameEndReason:
    lowered = text.strip().lower()
    for reason, wire in _WIRE_REASONS.items():
        if lowered == wire.lower():
            return reason
    try:
        return GameEndReason(lowered)
    except ValueError:
        return GameEndReason.REPORTED
