"""Encoding and decoding of the UCI text protocol, one line at a time."""

from __future__ import annotations

import re
from dataclasses import dataclass

from chessarena.core.move import Move
from chessarena.core.position import Position
from chessarena.engine.search import Score
from chessarena.errors import EngineFault

_MULTIPV_RE = re.compile(r"\bmultipv (\d+)")
_DEPTH_RE = re.compile(r"\bdepth (\d+)")
_CP_RE = re.compile(r"\bscore cp (-?\d+)")
_MATE_RE = re.compile(r"\bscore mate (-?\d+)")
_PV_RE = re.compile(r" pv (.+)$")


@dataclass(slots=True, frozen=True)
class InfoLine:
    line_index: int
    depth: int | None
    score: Score
    pv: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class BestMoveLine:
    move: Move | None  # ``None`` for ``bestmove (none)``
    ponder: Move | None = None


@dataclass(slots=True, frozen=True)
class Handshake:
    token: str  # "uciok" / "readyok"


UciLine = InfoLine | BestMoveLine | Handshake

# ── Outbound ─────────────────────────────────────────────────────────────────


def setoption_command(name: str, value: object) -> str:
    return f"setoption name {name} value {value}"


def position_command(position: Position) -> str:
    return f"position fen {position.fen}"


def go_command(depth: int) -> str:
    return f"go depth {depth}"


# ── Inbound ──────────────────────────────────────────────────────────────────


def parse_line(line: str) -> UciLine | None:
    """Decode one engine output line.

    Returns ``None`` for lines the session does not care about (``id``,
    ``option``, ``info`` without a score, ...).

    Raises:
        EngineFault: on a ``bestmove`` line that cannot be decoded.
    """
    text = line.strip()
    if not text:
        return None
    if text in ("uciok", "readyok"):
        return Handshake(text)
    if text.startswith("bestmove"):
        return _parse_bestmove(text)
    if text.startswith("info"):
        return _parse_info(text)
    return None


def _parse_info(text: str) -> InfoLine | None:
    mate = _MATE_RE.search(text)
    cp = _CP_RE.search(text)
    if mate is not None:
        score = Score(mate=int(mate.group(1)))
    elif cp is not None:
        score = Score(cp=int(cp.group(1)))
    else:
        return None

    multipv = _MULTIPV_RE.search(text)
    depth = _DEPTH_RE.search(text)
    pv = _PV_RE.search(text)
    return InfoLine(
        line_index=int(multipv.group(1)) if multipv else 1,
        depth=int(depth.group(1)) if depth else None,
        score=score,
        pv=tuple(pv.group(1).split()) if pv else (),
    )


def _parse_bestmove(text: str) -> BestMoveLine:
    parts = text.split()
    if len(parts) < 2:
        raise EngineFault(f"Malformed engine answer: {text!r}")
    if parts[1] in ("(none)", "0000"):
        return BestMoveLine(move=None)
    try:
        move = Move.from_uci(parts[1])
        ponder = (
            Move.from_uci(parts[3])
            if len(parts) >= 4 and parts[2] == "ponder"
            else None
        )
    except ValueError as exc:
        raise EngineFault(f"Malformed engine answer: {text!r}") from exc
    return BestMoveLine(move=move, ponder=ponder)
