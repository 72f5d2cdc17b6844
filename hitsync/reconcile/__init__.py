"""Swing matching, session aggregation and derived metrics."""

from hitsync.reconcile.matcher import MatchedPair, match_swings, singleton_pairs
from hitsync.reconcile.metrics import (
    SessionMetrics,
    SwingMetrics,
    compute_session_metrics,
    squared_up_rate,
    swing_metrics,
)
from hitsync.reconcile.sessions import Session, SessionType, build_sessions

__all__ = [
    "MatchedPair",
    "match_swings",
    "singleton_pairs",
    "Session",
    "SessionType",
    "build_sessions",
    "SessionMetrics",
    "SwingMetrics",
    "compute_session_metrics",
    "squared_up_rate",
    "swing_metrics",
]
