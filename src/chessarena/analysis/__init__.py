"""Live evaluation: score normalisation, verdicts and MultiPV aggregation."""

from chessarena.analysis.live import LiveAnalysis
from chessarena.analysis.models import (
    LineEvaluation,
    LiveEvaluation,
    Verdict,
    format_score,
    verdict_for,
)

__all__ = [
    "LineEvaluation",
    "LiveAnalysis",
    "LiveEvaluation",
    "Verdict",
    "format_score",
    "verdict_for",
]
