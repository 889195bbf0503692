"""Unit tests for the dragwiki.db layer and SqliteStorage."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

from dragwiki.db import (
    get_contestant_by_name,
    init_schema,
    insert_appearance,
    insert_contestant,
    update_contestant,
    update_contestant_images,
    upsert_franchise,
    upsert_season,
)
from dragwiki.errors import StorageError
from dragwiki.models import Appearance, Contestant, Franchise, JobStatus, Season
from dragwiki.storage import SqliteStorage


@pytest.fixture()
def db() -> sqlite3.Connection:
    """Create an in-memory database with schema."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row
    init_schema(conn)
    return conn


def _season(db: sqlite3.Connection, name: str = "Season 6") -> int:
    fid = upsert_franchise(db, Franchise(name="RuPaul's Drag Race"))
    return upsert_season(db, Season(name=name, franchise_id=fid))


class TestSchema:
    """Tests for database schema creation."""

    def test_tables_created(self, db: sqlite3.Connection) -> None:
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert {"franchises", "seasons", "contestants", "appearances", "scraping_jobs"} <= tables

    def test_idempotent_schema_init(self, db: sqlite3.Connection) -> None:
        init_schema(db)
        init_schema(db)
        assert db.execute("SELECT COUNT(*) FROM franchises").fetchone()[0] == 0


class TestUpsertFranchise:
    """Tests for franchise insert-or-keep."""

    def test_same_name_same_id(self, db: sqlite3.Connection) -> None:
        first = upsert_franchise(db, Franchise(name="Drag Race Brasil"))
        second = upsert_franchise(db, Franchise(name="Drag Race Brasil"))
        assert first == second

    def test_existing_url_not_overwritten(self, db: sqlite3.Connection) -> None:
        upsert_franchise(db, Franchise(name="Drag Race Brasil", source_url="https://a"))
        upsert_franchise(db, Franchise(name="Drag Race Brasil", source_url="https://b"))
        url = db.execute("SELECT source_url FROM franchises").fetchone()[0]
        assert url == "https://a"

    def test_missing_url_filled(self, db: sqlite3.Connection) -> None:
        upsert_franchise(db, Franchise(name="Drag Race Brasil"))
        upsert_franchise(db, Franchise(name="Drag Race Brasil", source_url="https://b"))
        url = db.execute("SELECT source_url FROM franchises").fetchone()[0]
        assert url == "https://b"


class TestUpsertSeason:
    """Tests for season insert-or-keep."""

    def test_keeps_year(self, db: sqlite3.Connection) -> None:
        fid = upsert_franchise(db, Franchise(name="F"))
        upsert_season(db, Season(name="S1", franchise_id=fid, year=2009))
        upsert_season(db, Season(name="S1", franchise_id=fid, year=2010))
        year = db.execute("SELECT year FROM seasons").fetchone()[0]
        assert year == 2009


class TestContestants:
    """Tests for contestant insertion and updates."""

    def test_insert_is_idempotent(self, db: sqlite3.Connection) -> None:
        first = insert_contestant(db, Contestant(drag_name="Katya", hometown="Boston"))
        second = insert_contestant(db, Contestant(drag_name="Katya", hometown="Elsewhere"))
        assert first == second
        stored = get_contestant_by_name(db, "Katya")
        assert stored is not None and stored.hometown == "Boston"

    def test_update_rejects_unknown_column(self, db: sqlite3.Connection) -> None:
        cid = insert_contestant(db, Contestant(drag_name="Katya"))
        with pytest.raises(ValueError, match="drag_name"):
            update_contestant(db, cid, drag_name="Katya Zamo")

    def test_images_round_trip(self, db: sqlite3.Connection) -> None:
        insert_contestant(db, Contestant(drag_name="Katya"))
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        update_contestant_images(db, "Katya", ["https://a/1.jpg", "https://a/2.jpg"], when)
        stored = get_contestant_by_name(db, "Katya")
        assert stored is not None
        assert stored.image_urls == ["https://a/1.jpg", "https://a/2.jpg"]
        assert stored.image_count == 2
        assert stored.last_image_scrape_at == when


class TestAppearances:
    """Tests for the contestant/season uniqueness constraint."""

    def test_second_insert_is_noop(self, db: sqlite3.Connection) -> None:
        sid = _season(db)
        cid = insert_contestant(db, Contestant(drag_name="Katya"))
        assert insert_appearance(db, Appearance(contestant_id=cid, season_id=sid, age=32))
        assert not insert_appearance(db, Appearance(contestant_id=cid, season_id=sid, age=33))
        count = db.execute("SELECT COUNT(*) FROM appearances").fetchone()[0]
        assert count == 1


class TestSqliteStorage:
    """Tests for the storage adapter."""

    def test_create_and_get(self, storage: SqliteStorage) -> None:
        franchise = storage.create_franchise(Franchise(name="Drag Race Brasil"))
        assert franchise.franchise_id is not None
        assert storage.get_franchise_by_name("Drag Race Brasil") == franchise
        assert storage.get_franchise_by_name("drag race brasil") is None

    def test_update_season_scraped_flag(self, storage: SqliteStorage) -> None:
        franchise = storage.create_franchise(Franchise(name="F"))
        assert franchise.franchise_id is not None
        season = storage.create_season(Season(name="S1", franchise_id=franchise.franchise_id))
        assert season.season_id is not None
        storage.update_season(season.season_id, is_scraped=True)
        stored = storage.get_season(season.season_id)
        assert stored is not None and stored.is_scraped is True

    def test_scraping_job_lifecycle(self, storage: SqliteStorage) -> None:
        job = storage.create_scraping_job(total_items=3)
        assert job.status is JobStatus.RUNNING
        storage.update_scraping_job(job.job_id, status=JobStatus.COMPLETED, progress=100)
        stored = storage.get_scraping_job(job.job_id)
        assert stored is not None
        assert stored.status is JobStatus.COMPLETED
        assert stored.progress == 100
        assert stored.total_items == 3

    def test_backend_errors_wrapped(self, storage: SqliteStorage) -> None:
        with pytest.raises(StorageError):
            storage.create_season(Season(name="Orphan", franchise_id=999))
