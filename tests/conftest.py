"""Shared fixtures for hitsync tests."""

import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

# Project root on path so cli.py and hitsync import without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from hitsync.database.schema import get_session_factory, init_db, reset_engine
from hitsync.devices.base import DeviceKind, NormalizedSwing, RawSwing

# 2024-05-01 14:00:00 UTC
BASE_INSTANT_MS = int(datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def swing_factory():
    """Build NormalizedSwings at an offset (seconds) from a fixed base instant."""

    def _make(
        kind: DeviceKind,
        row_id: str,
        offset_seconds: Optional[float] = 0.0,
        local_date: Optional[date] = date(2024, 5, 1),
        **metrics,
    ) -> NormalizedSwing:
        instant = None
        if offset_seconds is not None:
            instant = BASE_INSTANT_MS + int(round(offset_seconds * 1000))
        else:
            local_date = None
        raw = RawSwing(source=kind, row_id=row_id, metrics=dict(metrics))
        return NormalizedSwing(swing=raw, instant=instant, local_date=local_date)

    return _make


@pytest.fixture
def blast_rows():
    """Bat-sensor rows: two swings on 2024-05-01, one without timestamps."""
    return [
        {"id": "b1", "created_at_utc": "2024-05-01T14:00:00Z", "bat_speed": "70", "attack_angle": "8"},
        {"id": "b2", "created_at_utc": "2024-05-01T14:01:00Z", "bat_speed": "65", "attack_angle": "12"},
        {"id": "b3", "created_at_utc": None, "recorded_date": None, "recorded_time": None, "bat_speed": "60"},
    ]


@pytest.fixture
def hittrax_rows():
    """Ball-tracker rows: one swing 3.25 s after b1, one unrelated swing."""
    return [
        {
            "id": "h1",
            "session_id": "s1",
            "swing_timestamp": "05/01/2024 14:00:03.250",
            "exit_velocity": "95",
            "launch_angle": "22",
            "distance": "310",
            "pitch_velocity": "50",
        },
        {
            "id": "h2",
            "session_id": "s1",
            "swing_timestamp": "05/01/2024 14:05:00.000",
            "exit_velocity": "80",
            "launch_angle": "5",
            "distance": "150",
            "pitch_velocity": "50",
        },
    ]


@pytest.fixture
def fullswing_rows():
    return [
        {
            "id": "f1",
            "session_id": "fs1",
            "swing_date": "2024-04-30",
            "swing_time": "18:30:00",
            "bat_speed": "72",
            "exit_velocity": "98",
            "pitch_speed": "60",
            "smash_factor": "1.36",
            "squared_up": "88",
        },
    ]


@pytest.fixture
def db_session():
    """Session bound to a fresh in-memory SQLite database."""
    reset_engine()
    engine = init_db("sqlite://")
    SessionLocal = get_session_factory(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        reset_engine()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Drop handlers installed by setup_logging during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
