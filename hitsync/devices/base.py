"""Base types and timestamp parsing for hitting sensor devices."""

import enum
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# A timestamp string carrying either marker is treated as ISO-8601
ISO_MARKERS = ("T", "Z")

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMATS = ("%H:%M:%S", "%H:%M:%S.%f", "%H:%M")


class DeviceKind(enum.Enum):
    """Capture devices that produce swing records."""
    BLAST = "blast"
    HITTRAX = "hittrax"
    FULLSWING = "fullswing"


def to_float(value: Any) -> Optional[float]:
    """
    Coerce a device value to float.

    Numbers and numeric strings become floats. None, empty strings, NaN
    and non-numeric text become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def to_epoch_ms(dt: datetime, tz: Optional[tzinfo] = None) -> int:
    """
    Convert a datetime to epoch milliseconds.

    Naive datetimes are interpreted in ``tz``, or in the runtime's local
    timezone when ``tz`` is None.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def local_date_of(instant: int, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of an epoch-millisecond instant in ``tz`` (local if None)."""
    return datetime.fromtimestamp(instant / 1000.0, tz=tz).date()


def has_iso_markers(text: str) -> bool:
    """Whether a timestamp string should be parsed as ISO-8601."""
    return any(marker in text for marker in ISO_MARKERS)


def parse_iso(text: str, naive_tz: Optional[tzinfo] = None) -> Optional[int]:
    """
    Parse an ISO-8601 timestamp to epoch milliseconds.

    Args:
        text: ISO-8601 string, with or without an offset.
        naive_tz: Zone used for values without an offset (local if None).

    Returns:
        Epoch milliseconds, or None if the string is not a valid timestamp.
    """
    try:
        ts = pd.Timestamp(text.strip())
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return to_epoch_ms(ts.to_pydatetime(), naive_tz)


def parse_date_time(
    date_text: Optional[str],
    time_text: Optional[str],
    tz: Optional[tzinfo] = None,
) -> Optional[int]:
    """
    Combine a ``YYYY-MM-DD`` date and an ``HH:MM:SS`` local time.

    Both parts are required. Returns epoch milliseconds or None.
    """
    if not date_text or not time_text:
        return None
    try:
        day = datetime.strptime(date_text.strip(), DATE_FORMAT).date()
    except ValueError:
        return None
    for fmt in TIME_FORMATS:
        try:
            clock = datetime.strptime(time_text.strip(), fmt).time()
        except ValueError:
            continue
        return to_epoch_ms(datetime.combine(day, clock), tz)
    return None


def parse_date(date_text: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` date (a leading date of a longer string is accepted)."""
    if not date_text:
        return None
    match = re.match(r"\s*(\d{4}-\d{2}-\d{2})", str(date_text))
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), DATE_FORMAT).date()
    except ValueError:
        return None


@dataclass
class RawSwing:
    """
    One device's record of one physical swing.

    Attributes:
        source: Device that recorded the swing.
        row_id: The device's own row id. No cross-device id exists.
        timestamp_fields: Raw timestamp strings, keyed by device column.
        metrics: Canonical metric name -> value (None when not measured).
        session_id: The device's own session grouping, if any.
    """
    source: DeviceKind
    row_id: str
    timestamp_fields: Dict[str, Optional[str]] = field(default_factory=dict)
    metrics: Dict[str, Optional[float]] = field(default_factory=dict)
    session_id: Optional[str] = None

    def metric(self, name: str) -> Optional[float]:
        """Get a canonical metric value, None when absent."""
        return self.metrics.get(name)

    def timestamp(self, name: str) -> Optional[str]:
        """Get a raw timestamp field, None when absent or blank."""
        value = self.timestamp_fields.get(name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def key(self) -> tuple:
        """Identity of this swing within a reconciliation run."""
        return (self.source.value, self.row_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "source": self.source.value,
            "id": self.row_id,
            "session_id": self.session_id,
            **self.timestamp_fields,
            **self.metrics,
        }


@dataclass
class NormalizedSwing:
    """
    A RawSwing with a resolved instant.

    Attributes:
        swing: The source record.
        instant: Epoch milliseconds, None when no timestamp field resolved.
        local_date: Calendar date used for session grouping.
    """
    swing: RawSwing
    instant: Optional[int] = None
    local_date: Optional[date] = None

    @property
    def is_matchable(self) -> bool:
        return self.instant is not None

    @property
    def source(self) -> DeviceKind:
        return self.swing.source

    @property
    def row_id(self) -> str:
        return self.swing.row_id

    @property
    def key(self) -> tuple:
        return self.swing.key

    def metric(self, name: str) -> Optional[float]:
        return self.swing.metric(name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        data = self.swing.to_dict()
        data["instant"] = self.instant
        data["local_date"] = self.local_date.isoformat() if self.local_date else None
        return data


class TimestampParser(ABC):
    """
    Abstract base class for device profiles.

    Each device kind implements its own timestamp grammar and maps its
    native columns onto canonical metric names.
    """

    # Device column -> canonical metric name
    COLUMN_MAPPING: Dict[str, str] = {}

    # Device columns holding raw timestamp text
    TIMESTAMP_COLUMNS: List[str] = []

    ID_COLUMN = "id"
    SESSION_COLUMN = "session_id"

    @property
    @abstractmethod
    def kind(self) -> DeviceKind:
        """Device kind handled by this profile."""
        pass

    @abstractmethod
    def parse_instant(
        self,
        swing: RawSwing,
        tz: Optional[tzinfo] = None,
    ) -> Optional[int]:
        """
        Resolve the swing's instant.

        Args:
            swing: Raw swing from this device.
            tz: Zone for local (offset-free) timestamps; runtime local if None.

        Returns:
            Epoch milliseconds, or None when no field yields a valid instant.
        """
        pass

    def is_placeholder(self, swing: RawSwing) -> bool:
        """Whether the device wrote this row without recording a swing."""
        return False

    def local_date(
        self,
        swing: RawSwing,
        instant: Optional[int],
        tz: Optional[tzinfo] = None,
    ) -> Optional[date]:
        """
        Calendar date used to group the swing into a session.

        Defaults to the local date of the resolved instant.
        """
        if instant is None:
            return None
        return local_date_of(instant, tz)

    def to_raw_swing(self, row: Dict[str, Any]) -> RawSwing:
        """
        Build a RawSwing from a device-native row.

        Args:
            row: Flat record of named fields as produced by the data source.

        Returns:
            RawSwing with canonical metric names.
        """
        metrics: Dict[str, Optional[float]] = {}
        for column, metric_name in self.COLUMN_MAPPING.items():
            if column in row:
                metrics[metric_name] = to_float(row[column])

        timestamp_fields: Dict[str, Optional[str]] = {}
        for column in self.TIMESTAMP_COLUMNS:
            value = row.get(column)
            if value is None or (isinstance(value, float) and math.isnan(value)):
                timestamp_fields[column] = None
            else:
                timestamp_fields[column] = str(value)

        row_id = row.get(self.ID_COLUMN)
        session_id = row.get(self.SESSION_COLUMN)
        return RawSwing(
            source=self.kind,
            row_id=str(row_id) if row_id is not None else "",
            timestamp_fields=timestamp_fields,
            metrics=metrics,
            session_id=str(session_id) if session_id is not None else None,
        )

    def normalize(self, swing: RawSwing, tz: Optional[tzinfo] = None) -> NormalizedSwing:
        """Resolve instant and local date; never raises on bad timestamps."""
        try:
            instant = self.parse_instant(swing, tz)
        except (TypeError, ValueError, OverflowError) as e:
            logger.debug(f"Unparseable {self.kind.value} timestamp for {swing.row_id}: {e}")
            instant = None

        if instant is None:
            logger.debug(f"No instant for {self.kind.value} swing {swing.row_id}")

        return NormalizedSwing(
            swing=swing,
            instant=instant,
            local_date=self.local_date(swing, instant, tz),
        )
