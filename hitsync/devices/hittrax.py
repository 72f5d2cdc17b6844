"""HitTrax batted-ball tracker swing records."""

import re
from datetime import datetime, tzinfo
from typing import Optional

from hitsync.devices.base import (
    DeviceKind,
    RawSwing,
    TimestampParser,
    has_iso_markers,
    parse_iso,
    to_epoch_ms,
)

# "10/30/2025 19:18:31.573"
SLASH_TIMESTAMP = re.compile(
    r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{1,2}):(\d{1,2})(?:\.(\d+))?\s*$"
)


def parse_slash_timestamp(text: str, tz: Optional[tzinfo] = None) -> Optional[int]:
    """
    Parse ``MM/DD/YYYY HH:MM:SS.fff`` as a local time.

    Args:
        text: Timestamp text in the tracker's export format.
        tz: Zone the tracker clock runs in (runtime local if None).

    Returns:
        Epoch milliseconds, or None if the text does not match.
    """
    match = SLASH_TIMESTAMP.match(text)
    if not match:
        return None

    month, day, year, hours, minutes, seconds = (int(g) for g in match.groups()[:6])
    fraction = match.group(7) or "0"
    microsecond = int(fraction[:6].ljust(6, "0"))

    try:
        dt = datetime(year, month, day, hours, minutes, seconds, microsecond)
    except ValueError:
        return None
    return to_epoch_ms(dt, tz)


class HitTraxParser(TimestampParser):
    """Radar/vision batted-ball tracker."""

    COLUMN_MAPPING = {
        "exit_velocity": "exit_velocity",
        "launch_angle": "launch_angle",
        "distance": "distance",
        "horizontal_angle": "horizontal_angle",
        "pitch_velocity": "pitch_speed",
        "spray_chart_x": "spray_chart_x",
        "spray_chart_z": "spray_chart_z",
    }

    TIMESTAMP_COLUMNS = ["swing_timestamp"]

    @property
    def kind(self) -> DeviceKind:
        return DeviceKind.HITTRAX

    def is_placeholder(self, swing: RawSwing) -> bool:
        """Rows landing exactly on the spray chart origin are not batted balls."""
        return swing.metric("spray_chart_x") == 0 and swing.metric("spray_chart_z") == 0

    def parse_instant(
        self,
        swing: RawSwing,
        tz: Optional[tzinfo] = None,
    ) -> Optional[int]:
        """Parse ISO-8601 when the text carries ISO markers, else the slash format."""
        text = swing.timestamp("swing_timestamp")
        if not text:
            return None
        if has_iso_markers(text):
            return parse_iso(text, naive_tz=tz)
        return parse_slash_timestamp(text, tz)
