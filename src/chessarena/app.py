"""Wiring of a ready-to-use session for hosts (GUI, headless drivers)."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject

from chessarena.core.rules import ChessRules
from chessarena.engine.channel import EngineChannel
from chessarena.engine.process import EngineProcess
from chessarena.game.session import SessionController
from chessarena.game.ticker import ClockTicker, QtClockTicker
from chessarena.net.peer_sync import PeerSyncChannel
from chessarena.net.transport import Transport
from chessarena.settings import SessionSettings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Install a basic stream handler on the ``chessarena`` logger."""
    logger = logging.getLogger("chessarena")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)


def create_session(
    settings: SessionSettings | None = None,
    *,
    transport: Transport | None = None,
    ticker: ClockTicker | None = None,
    parent: QObject | None = None,
) -> SessionController:
    """Build a session with python-chess rules and a QProcess engine.

    The engine process is only launched by the first search.  Without a
    *transport* the session cannot play remote games.
    """
    settings = settings or SessionSettings()
    process = EngineProcess(settings.engine_command, settings.engine_args, parent)
    engine = EngineChannel(process, parent)
    peer = PeerSyncChannel(transport, parent) if transport is not None else None
    return SessionController(
        ChessRules(chess960=settings.chess960),
        engine=engine,
        peer=peer,
        ticker=ticker or QtClockTicker(settings.clock_tick_ms, parent),
        settings=settings,
    )
