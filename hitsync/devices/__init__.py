"""Device profiles and timestamp normalization."""

import logging
from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Optional, Union

from hitsync.devices.base import (
    DeviceKind,
    NormalizedSwing,
    RawSwing,
    TimestampParser,
)
from hitsync.devices.blast import BlastParser
from hitsync.devices.fullswing import FullSwingParser
from hitsync.devices.hittrax import HitTraxParser

logger = logging.getLogger(__name__)

_PARSERS: Dict[DeviceKind, TimestampParser] = {
    DeviceKind.BLAST: BlastParser(),
    DeviceKind.HITTRAX: HitTraxParser(),
    DeviceKind.FULLSWING: FullSwingParser(),
}


def get_parser(kind: Union[DeviceKind, str]) -> TimestampParser:
    """
    Get the profile for a device kind.

    Raises:
        ValueError: If the kind is unknown.
    """
    return _PARSERS[DeviceKind(kind)]


def to_raw_swings(kind: Union[DeviceKind, str], rows: Iterable[Dict[str, Any]]) -> List[RawSwing]:
    """
    Build RawSwings from device-native rows.

    Rows without an id (e.g. bare CSV exports) get their 1-based position
    as id so every swing stays distinguishable within the run. Placeholder
    rows the device wrote without a real swing are dropped.
    """
    parser = get_parser(kind)
    swings = []
    placeholders = 0
    for position, row in enumerate(rows, start=1):
        swing = parser.to_raw_swing(row)
        if not swing.row_id:
            swing.row_id = str(position)
        if parser.is_placeholder(swing):
            placeholders += 1
            continue
        swings.append(swing)

    if placeholders:
        logger.debug(f"Dropped {placeholders} placeholder {parser.kind.value} rows")
    return swings


def normalize_swing(swing: RawSwing, tz: Optional[tzinfo] = None) -> NormalizedSwing:
    """Resolve a swing's instant by dispatching on its source."""
    return get_parser(swing.source).normalize(swing, tz)


def normalize_swings(
    swings: Iterable[RawSwing],
    tz: Optional[tzinfo] = None,
) -> List[NormalizedSwing]:
    """Normalize a batch of swings, keeping input order."""
    return [normalize_swing(swing, tz) for swing in swings]


__all__ = [
    "DeviceKind",
    "RawSwing",
    "NormalizedSwing",
    "TimestampParser",
    "BlastParser",
    "HitTraxParser",
    "FullSwingParser",
    "get_parser",
    "to_raw_swings",
    "normalize_swing",
    "normalize_swings",
]
