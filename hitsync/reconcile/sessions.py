"""Group matched swings into calendar-day sessions."""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from hitsync.devices.base import DeviceKind, NormalizedSwing
from hitsync.reconcile.matcher import MatchedPair

if TYPE_CHECKING:
    from hitsync.reconcile.metrics import SessionMetrics

logger = logging.getLogger(__name__)


class SessionType(Enum):
    """Which devices contributed to a session."""
    PAIRED = "paired"
    BLAST = "blast"
    HITTRAX = "hittrax"
    FULLSWING = "fullswing"
    MIXED = "mixed"


@dataclass
class Session:
    """
    All swings attributed to one calendar date, regardless of device.

    Attributes:
        date: Calendar key of the session.
        pairs: Matched and singleton pairs bucketed on this date.
        swings_by_device: Member swings per device kind.
        paired_count: Number of pairs with both sides present.
        metrics: Derived metrics, recomputed on every run.
    """
    date: date
    pairs: List[MatchedPair] = field(default_factory=list)
    swings_by_device: Dict[DeviceKind, List[NormalizedSwing]] = field(
        default_factory=lambda: {kind: [] for kind in DeviceKind}
    )
    paired_count: int = 0
    metrics: Optional["SessionMetrics"] = None

    def add_pair(self, pair: MatchedPair) -> None:
        """Accumulate a pair's swings and counts."""
        self.pairs.append(pair)
        for swing in pair.swings:
            self.swings_by_device[swing.source].append(swing)
        if pair.is_paired:
            self.paired_count += 1

    @property
    def blast_swings(self) -> List[NormalizedSwing]:
        return self.swings_by_device[DeviceKind.BLAST]

    @property
    def hittrax_swings(self) -> List[NormalizedSwing]:
        return self.swings_by_device[DeviceKind.HITTRAX]

    @property
    def fullswing_swings(self) -> List[NormalizedSwing]:
        return self.swings_by_device[DeviceKind.FULLSWING]

    def swing_count(self, kind: DeviceKind) -> int:
        return len(self.swings_by_device[kind])

    @property
    def total_swings(self) -> int:
        """Physical swings in the session; a matched pair counts once."""
        return len(self.pairs)

    @property
    def is_paired(self) -> bool:
        """Both the bat sensor and the ball tracker contributed swings."""
        return bool(self.blast_swings) and bool(self.hittrax_swings)

    @property
    def sources(self) -> List[DeviceKind]:
        return [kind for kind in DeviceKind if self.swings_by_device[kind]]

    @property
    def session_type(self) -> SessionType:
        sources = self.sources
        if sources == [DeviceKind.BLAST, DeviceKind.HITTRAX]:
            return SessionType.PAIRED
        if len(sources) == 1:
            return SessionType(sources[0].value)
        return SessionType.MIXED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        data: Dict[str, Any] = {
            "session_date": self.date.isoformat(),
            "session_type": self.session_type.value,
            "is_paired": self.is_paired,
            "total_swings": self.total_swings,
            "paired_swings_count": self.paired_count,
        }
        for kind in DeviceKind:
            data[f"{kind.value}_swings_count"] = self.swing_count(kind)
        if self.metrics is not None:
            data["metrics"] = self.metrics.to_dict()
        return data


def session_date(pair: MatchedPair) -> Optional[date]:
    """
    Calendar key for a pair.

    The primary side wins when present; otherwise the secondary side's
    date is used. Matched sides agree almost by construction since the
    match window is only seconds wide.
    """
    if pair.primary is not None:
        return pair.primary.local_date
    if pair.secondary is not None:
        return pair.secondary.local_date
    return None


def build_sessions(pairs: Iterable[MatchedPair]) -> List[Session]:
    """
    Bucket pairs by calendar date into sessions.

    Pairs whose date cannot be resolved are dropped and contribute to no
    session.

    Args:
        pairs: Output of the matcher, plus any singleton pairs.

    Returns:
        Sessions sorted by date, most recent first.
    """
    sessions: Dict[date, Session] = {}
    dropped = 0

    for pair in pairs:
        key = session_date(pair)
        if key is None:
            dropped += 1
            continue
        if key not in sessions:
            sessions[key] = Session(date=key)
        sessions[key].add_pair(pair)

    if dropped:
        logger.debug(f"Dropped {dropped} pairs without a session date")

    return sorted(sessions.values(), key=lambda s: s.date, reverse=True)
