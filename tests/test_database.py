"""Tests for the local swing store."""

import pytest

from hitsync.database.models import Athlete, BlastSwing, HitTraxSession
from hitsync.database.operations import SwingRepository, content_id
from hitsync.database.schema import get_session, init_db, reset_engine
from hitsync.devices.base import DeviceKind


@pytest.fixture
def repo(db_session):
    return SwingRepository(db_session)


class TestImportRows:

    def test_blast_rows(self, repo, blast_rows, db_session):
        inserted = repo.import_rows("ath-1", DeviceKind.BLAST, blast_rows)

        assert inserted == 3
        stored = db_session.get(BlastSwing, "b1")
        assert stored.bat_speed == 70.0
        assert stored.created_at_utc == "2024-05-01T14:00:00Z"
        assert stored.athlete_id == "ath-1"
        assert repo.get_athlete("ath-1") is not None

    def test_reimport_skips_existing(self, repo, blast_rows):
        repo.import_rows("ath-1", "blast", blast_rows)
        assert repo.import_rows("ath-1", "blast", blast_rows) == 0

    def test_duplicate_ids_in_one_batch(self, repo):
        rows = [{"id": "b1", "bat_speed": "70"}, {"id": "b1", "bat_speed": "71"}]
        assert repo.import_rows("ath-1", "blast", rows) == 1

    def test_rows_without_id_get_one(self, repo):
        inserted = repo.import_rows("ath-1", "blast", [{"bat_speed": "70"}, {"id": None, "bat_speed": "65"}])

        assert inserted == 2
        ids = [row["id"] for row in repo.get_rows("ath-1", "blast")]
        assert len(set(ids)) == 2
        assert all(ids)

    def test_reimport_without_ids_is_noop(self, repo):
        rows = [{"created_at_utc": "2024-05-01T14:00:00Z", "bat_speed": "70"}]

        assert repo.import_rows("ath-1", "blast", rows) == 1
        assert repo.import_rows("ath-1", "blast", [dict(row) for row in rows]) == 0
        assert len(repo.get_rows("ath-1", "blast")) == 1

    def test_generated_ids_scoped_to_athlete(self, repo):
        row = {"created_at_utc": "2024-05-01T14:00:00Z", "bat_speed": "70"}

        assert content_id("ath-1", DeviceKind.BLAST, row) == content_id("ath-1", DeviceKind.BLAST, dict(row))
        assert content_id("ath-1", DeviceKind.BLAST, row) != content_id("ath-2", DeviceKind.BLAST, row)
        assert repo.import_rows("ath-1", "blast", [row]) == 1
        assert repo.import_rows("ath-2", "blast", [row]) == 1

    def test_sessions_created_for_tracker_rows(self, repo, hittrax_rows, db_session):
        repo.import_rows("ath-1", DeviceKind.HITTRAX, hittrax_rows)

        session = db_session.get(HitTraxSession, "s1")
        assert session is not None
        assert session.athlete_id == "ath-1"
        assert len(session.swings) == 2

    def test_default_session_when_missing(self, repo, db_session):
        repo.import_rows("ath-1", "hittrax", [{"id": "h9", "swing_timestamp": "05/01/2024 14:00:00.000"}])

        assert db_session.get(HitTraxSession, "ath-1-hittrax-default") is not None

    def test_unknown_device(self, repo):
        with pytest.raises(ValueError):
            repo.import_rows("ath-1", "rapsodo", [])


class TestReadRows:

    def test_rows_round_trip_to_device_shape(self, repo, hittrax_rows):
        repo.import_rows("ath-1", "hittrax", hittrax_rows)

        rows = repo.get_rows("ath-1", "hittrax")

        assert [r["id"] for r in rows] == ["h1", "h2"]
        assert rows[0]["swing_timestamp"] == "05/01/2024 14:00:03.250"
        assert rows[0]["pitch_velocity"] == 50.0
        assert rows[0]["session_id"] == "s1"

    def test_rows_scoped_to_athlete(self, repo, blast_rows, fullswing_rows):
        repo.import_rows("ath-1", "blast", blast_rows)
        repo.import_rows("ath-2", "fullswing", fullswing_rows)

        assert repo.get_rows("ath-2", "blast") == []
        assert [r["id"] for r in repo.get_rows("ath-2", "fullswing")] == ["f1"]
        assert repo.get_rows("ath-1", "fullswing") == []

    def test_streams_cover_every_device(self, repo, blast_rows):
        repo.import_rows("ath-1", "blast", blast_rows)

        streams = repo.get_streams("ath-1")

        assert set(streams) == set(DeviceKind)
        assert len(streams[DeviceKind.BLAST]) == 3
        assert streams[DeviceKind.HITTRAX] == []


class TestStats:

    def test_counts(self, repo, blast_rows, hittrax_rows, fullswing_rows):
        repo.import_rows("ath-1", "blast", blast_rows)
        repo.import_rows("ath-1", "hittrax", hittrax_rows)
        repo.import_rows("ath-1", "fullswing", fullswing_rows)

        assert repo.get_database_stats() == {
            "athletes": 1,
            "blast_swings": 3,
            "hittrax_sessions": 1,
            "hittrax_swings": 2,
            "fullswing_sessions": 1,
            "fullswing_swings": 1,
        }

    def test_empty(self, repo):
        assert set(repo.get_database_stats().values()) == {0}


class TestSessionScope:

    @pytest.fixture
    def memory_db(self):
        reset_engine()
        init_db("sqlite://")
        yield
        reset_engine()

    def test_writes_visible_in_next_session(self, memory_db, blast_rows):
        with get_session() as session:
            SwingRepository(session).import_rows("ath-1", "blast", blast_rows)

        with get_session() as session:
            assert len(SwingRepository(session).get_rows("ath-1", "blast")) == 3

    def test_rolls_back_on_error(self, memory_db):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                session.add(Athlete(athlete_id="ath-1"))
                session.flush()
                raise RuntimeError("import aborted")

        with get_session() as session:
            assert SwingRepository(session).get_athlete("ath-1") is None
