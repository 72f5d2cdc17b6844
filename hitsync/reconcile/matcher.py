"""Nearest-time one-to-one matching between two swing streams."""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from hitsync.devices.base import NormalizedSwing

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 7.0


@dataclass
class MatchedPair:
    """
    One physical swing as seen by up to two devices.

    Attributes:
        primary: Swing from the first stream (None for a secondary-only pair).
        secondary: Swing from the second stream (None for a primary-only pair).
        time_diff_seconds: Absolute clock difference between the two sides;
            0.0 when only one side is present.
    """
    primary: Optional[NormalizedSwing] = None
    secondary: Optional[NormalizedSwing] = None
    time_diff_seconds: float = 0.0

    @property
    def is_paired(self) -> bool:
        """Whether both devices recorded this swing."""
        return self.primary is not None and self.secondary is not None

    @property
    def swings(self) -> List[NormalizedSwing]:
        """Present sides, primary first."""
        return [s for s in (self.primary, self.secondary) if s is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "primary": self.primary.to_dict() if self.primary else None,
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "time_diff_seconds": self.time_diff_seconds,
            "paired": self.is_paired,
        }


def _sorted_by_instant(stream: Sequence[NormalizedSwing]) -> List[NormalizedSwing]:
    """Matchable swings in ascending instant order (stable)."""
    return sorted(
        (s for s in stream if s.instant is not None),
        key=lambda s: s.instant,
    )


def match_swings(
    stream_a: Sequence[NormalizedSwing],
    stream_b: Sequence[NormalizedSwing],
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
) -> List[MatchedPair]:
    """
    Greedily pair swings from two streams by nearest time.

    Stream A is walked in time order; each A swing claims the unconsumed B
    swing closest in time, provided the gap is within the window. Exact ties
    go to the earlier B swing. The assignment is greedy: an early A swing
    can claim a B swing that a later A swing would have matched more
    tightly.

    Swings without an instant do not take part.

    Args:
        stream_a: Swings from the first device.
        stream_b: Swings from the second device.
        window_seconds: Maximum clock difference for a match.

    Returns:
        A-side pairs (matched or A-only) in A time order, followed by B-only
        pairs in B time order.

    Raises:
        ValueError: If window_seconds is negative.
    """
    if window_seconds < 0:
        raise ValueError(f"window_seconds must be non-negative, got {window_seconds}")

    a_sorted = _sorted_by_instant(stream_a)
    b_sorted = _sorted_by_instant(stream_b)

    # Unconsumed B swings, kept in ascending instant order
    open_instants: List[int] = [s.instant for s in b_sorted]
    open_swings: List[NormalizedSwing] = list(b_sorted)

    # Slightly wide search bounds; the exact window test is done in seconds
    reach_ms = window_seconds * 1000.0 + 1.0

    pairs: List[MatchedPair] = []
    matched = 0

    for a_swing in a_sorted:
        lo = bisect_left(open_instants, a_swing.instant - reach_ms)
        hi = bisect_right(open_instants, a_swing.instant + reach_ms)

        best_index: Optional[int] = None
        best_diff = 0.0
        for index in range(lo, hi):
            diff = abs(a_swing.instant - open_instants[index]) / 1000.0
            if diff > window_seconds:
                continue
            if best_index is None or diff < best_diff:
                best_index = index
                best_diff = diff

        if best_index is None:
            pairs.append(MatchedPair(primary=a_swing))
            continue

        b_swing = open_swings.pop(best_index)
        del open_instants[best_index]
        pairs.append(
            MatchedPair(primary=a_swing, secondary=b_swing, time_diff_seconds=best_diff)
        )
        matched += 1

    for b_swing in open_swings:
        pairs.append(MatchedPair(secondary=b_swing))

    logger.debug(
        f"Matched {matched} pairs from {len(a_sorted)} x {len(b_sorted)} swings "
        f"(window={window_seconds}s, excluded "
        f"{len(stream_a) - len(a_sorted) + len(stream_b) - len(b_sorted)} without instant)"
    )

    return pairs


def singleton_pairs(stream: Sequence[NormalizedSwing]) -> List[MatchedPair]:
    """Wrap swings that need no partner (combined-unit records) as pairs."""
    return [MatchedPair(primary=s) for s in _sorted_by_instant(stream)]
