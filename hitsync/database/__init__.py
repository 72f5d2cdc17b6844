"""Local storage for device swing rows."""

from hitsync.database.models import (
    Athlete,
    Base,
    BlastSwing,
    FullSwingSession,
    FullSwingSwing,
    HitTraxSession,
    HitTraxSwing,
)
from hitsync.database.operations import SwingRepository
from hitsync.database.schema import get_engine, get_session, init_db, reset_engine

__all__ = [
    "Base",
    "Athlete",
    "BlastSwing",
    "HitTraxSession",
    "HitTraxSwing",
    "FullSwingSession",
    "FullSwingSwing",
    "SwingRepository",
    "init_db",
    "get_engine",
    "get_session",
    "reset_engine",
]
