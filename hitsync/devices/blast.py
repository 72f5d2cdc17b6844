"""Blast bat-sensor swing records."""

from datetime import timezone, tzinfo
from typing import Optional

from hitsync.devices.base import (
    DeviceKind,
    RawSwing,
    TimestampParser,
    parse_date_time,
    parse_iso,
)


class BlastParser(TimestampParser):
    """
    Bat-mounted motion sensor.

    Rows carry a UTC-tagged ``created_at_utc`` and, separately, the local
    ``recorded_date``/``recorded_time`` the sensor app displayed.
    """

    COLUMN_MAPPING = {
        "bat_speed": "bat_speed",
        "attack_angle": "attack_angle",
        "on_plane_efficiency": "on_plane_efficiency",
        "peak_hand_speed": "peak_hand_speed",
        "time_to_contact": "time_to_contact",
        "power": "power",
    }

    TIMESTAMP_COLUMNS = ["created_at_utc", "recorded_date", "recorded_time"]

    @property
    def kind(self) -> DeviceKind:
        return DeviceKind.BLAST

    def parse_instant(
        self,
        swing: RawSwing,
        tz: Optional[tzinfo] = None,
    ) -> Optional[int]:
        """Prefer the UTC field; fall back to local date + time."""
        created_at = swing.timestamp("created_at_utc")
        if created_at:
            # The column is UTC by contract, even without an offset suffix
            instant = parse_iso(created_at, naive_tz=timezone.utc)
            if instant is not None:
                return instant

        return parse_date_time(
            swing.timestamp("recorded_date"),
            swing.timestamp("recorded_time"),
            tz,
        )
