"""Database operations for locally stored device swings."""

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from tqdm import tqdm

from hitsync.database.models import (
    Athlete,
    Base,
    BlastSwing,
    FullSwingSession,
    FullSwingSwing,
    HitTraxSession,
    HitTraxSwing,
)
from hitsync.devices.base import DeviceKind, to_float

logger = logging.getLogger(__name__)

# Device kind -> (swing model, session model or None for per-athlete swings)
_MODELS: Dict[DeviceKind, tuple] = {
    DeviceKind.BLAST: (BlastSwing, None),
    DeviceKind.HITTRAX: (HitTraxSwing, HitTraxSession),
    DeviceKind.FULLSWING: (FullSwingSwing, FullSwingSession),
}

# Columns stored as raw text rather than coerced to float
_TEXT_COLUMNS = {
    "created_at_utc",
    "recorded_date",
    "recorded_time",
    "swing_timestamp",
    "swing_date",
    "swing_time",
}


def content_id(athlete_id: str, kind: DeviceKind, row: Dict[str, Any]) -> str:
    """
    Stable id for a row that carries none.

    Hashes the athlete, device and every field of the row, so the same
    export row maps to the same id on every import.
    """
    fields = {str(k): (None if v is None else str(v)) for k, v in row.items() if k != "id"}
    payload = json.dumps([athlete_id, kind.value, fields], sort_keys=True)
    return hashlib.md5(payload.encode()).hexdigest()


class SwingRepository:
    """
    Stores and reads device-native swing rows.

    Rows go in and come out in the same flat shape the data service and
    CSV exports use, so stored data feeds straight back into the pipeline.
    """

    def __init__(self, session: Session):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy session instance.
        """
        self.session = session

    # ==================== Athlete Operations ====================

    def get_athlete(self, athlete_id: str) -> Optional[Athlete]:
        """Get an athlete by id."""
        return self.session.get(Athlete, athlete_id)

    def get_or_create_athlete(self, athlete_id: str, name: Optional[str] = None) -> Athlete:
        """Get existing athlete or create a new one."""
        athlete = self.get_athlete(athlete_id)
        if athlete is None:
            athlete = Athlete(athlete_id=athlete_id, name=name)
            self.session.add(athlete)
            self.session.commit()
            logger.debug(f"Created athlete: {athlete}")
        return athlete

    # ==================== Import ====================

    def _get_or_create_session(
        self,
        model: Type[Base],
        session_id: str,
        athlete_id: str,
        session_date: Optional[str] = None,
    ) -> None:
        if self.session.get(model, session_id) is None:
            self.session.add(model(id=session_id, athlete_id=athlete_id, session_date=session_date))
            self.session.flush()
            logger.debug(f"Created {model.__tablename__} row {session_id}")

    @staticmethod
    def _column_values(model: Type[Base], row: Dict[str, Any]) -> Dict[str, Any]:
        """Pick a row's values for the model's device columns."""
        skip = {"id", "athlete_id", "session_id", "imported_at"}
        values: Dict[str, Any] = {}
        for column in model.__table__.columns:
            name = column.name
            if name in skip or name not in row:
                continue
            value = row[name]
            if name in _TEXT_COLUMNS:
                values[name] = None if value is None else str(value)
            else:
                values[name] = to_float(value)
        return values

    def import_rows(
        self,
        athlete_id: str,
        kind: Union[DeviceKind, str],
        rows: Iterable[Dict[str, Any]],
        show_progress: bool = False,
    ) -> int:
        """
        Store device-native rows for an athlete.

        Rows whose id is already stored are skipped, so re-importing the
        same export is a no-op. Rows without an id get one derived from
        their content (see content_id), which keeps that true for bare
        CSV exports.
        Ball-tracker and combined-unit rows without a ``session_id`` go
        into a per-athlete default session.

        Args:
            athlete_id: Owning athlete; created when missing.
            kind: Device that produced the rows.
            rows: Flat row dictionaries.
            show_progress: Show a progress bar.

        Returns:
            Number of rows inserted.

        Raises:
            ValueError: If the device kind is unknown.
        """
        kind = DeviceKind(kind)
        swing_model, session_model = _MODELS[kind]
        rows = list(rows)

        self.get_or_create_athlete(athlete_id)

        inserted = 0
        skipped = 0
        seen = set()
        iterator = tqdm(rows, desc=f"Importing {kind.value} swings") if show_progress else rows

        for row in iterator:
            row_id = row.get("id")
            if row_id is None or not str(row_id).strip():
                row_id = content_id(athlete_id, kind, row)
            row_id = str(row_id)

            if row_id in seen or self.session.get(swing_model, row_id) is not None:
                skipped += 1
                continue

            values = self._column_values(swing_model, row)
            if session_model is None:
                values["athlete_id"] = athlete_id
            else:
                session_id = row.get("session_id")
                session_id = str(session_id) if session_id is not None else f"{athlete_id}-{kind.value}-default"
                self._get_or_create_session(session_model, session_id, athlete_id, row.get("session_date"))
                values["session_id"] = session_id

            self.session.add(swing_model(id=row_id, **values))
            seen.add(row_id)
            inserted += 1

        self.session.commit()
        logger.info(
            f"Imported {inserted} {kind.value} swings for athlete {athlete_id} "
            f"({skipped} already stored)"
        )
        return inserted

    # ==================== Read ====================

    def get_rows(self, athlete_id: str, kind: Union[DeviceKind, str]) -> List[Dict[str, Any]]:
        """
        Get an athlete's stored swings for one device as row dicts.

        Args:
            athlete_id: Athlete identifier.
            kind: Device kind.

        Returns:
            Rows ordered by id.
        """
        kind = DeviceKind(kind)
        swing_model, session_model = _MODELS[kind]

        stmt = select(swing_model)
        if session_model is None:
            stmt = stmt.where(swing_model.athlete_id == athlete_id)
        else:
            stmt = stmt.join(session_model).where(session_model.athlete_id == athlete_id)
        stmt = stmt.order_by(swing_model.id)

        return [swing.to_row() for swing in self.session.scalars(stmt)]

    def get_streams(self, athlete_id: str) -> Dict[DeviceKind, List[Dict[str, Any]]]:
        """Get every device stream stored for an athlete."""
        return {kind: self.get_rows(athlete_id, kind) for kind in DeviceKind}

    # ==================== Statistics ====================

    def get_database_stats(self) -> Dict[str, int]:
        """
        Get statistics about the database contents.

        Returns:
            Dictionary with counts of each table.
        """
        return {
            "athletes": self.session.query(func.count(Athlete.athlete_id)).scalar(),
            "blast_swings": self.session.query(func.count(BlastSwing.id)).scalar(),
            "hittrax_sessions": self.session.query(func.count(HitTraxSession.id)).scalar(),
            "hittrax_swings": self.session.query(func.count(HitTraxSwing.id)).scalar(),
            "fullswing_sessions": self.session.query(func.count(FullSwingSession.id)).scalar(),
            "fullswing_swings": self.session.query(func.count(FullSwingSwing.id)).scalar(),
        }
