"""Full Swing combined-unit swing records."""

from datetime import date, tzinfo
from typing import Optional

from hitsync.devices.base import (
    DeviceKind,
    RawSwing,
    TimestampParser,
    has_iso_markers,
    parse_date,
    parse_date_time,
    parse_iso,
)


class FullSwingParser(TimestampParser):
    """
    Combined unit measuring bat and ball on one clock.

    Each record already describes a complete swing, so it never needs a
    partner from another stream.
    """

    COLUMN_MAPPING = {
        "bat_speed": "bat_speed",
        "exit_velocity": "exit_velocity",
        "launch_angle": "launch_angle",
        "spray_angle": "spray_angle",
        "distance": "distance",
        "smash_factor": "smash_factor",
        "squared_up": "squared_up",
        "pitch_speed": "pitch_speed",
    }

    TIMESTAMP_COLUMNS = ["swing_timestamp", "swing_date", "swing_time"]

    @property
    def kind(self) -> DeviceKind:
        return DeviceKind.FULLSWING

    def parse_instant(
        self,
        swing: RawSwing,
        tz: Optional[tzinfo] = None,
    ) -> Optional[int]:
        combined = swing.timestamp("swing_timestamp")
        if combined and has_iso_markers(combined):
            instant = parse_iso(combined, naive_tz=tz)
            if instant is not None:
                return instant

        return parse_date_time(
            swing.timestamp("swing_date"),
            swing.timestamp("swing_time"),
            tz,
        )

    def local_date(
        self,
        swing: RawSwing,
        instant: Optional[int],
        tz: Optional[tzinfo] = None,
    ) -> Optional[date]:
        """Combined-unit swings are grouped by their own date."""
        if instant is None:
            return None
        own_date = parse_date(swing.timestamp("swing_date"))
        if own_date is not None:
            return own_date
        return super().local_date(swing, instant, tz)
