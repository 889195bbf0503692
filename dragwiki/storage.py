"""Storage contract used by the scraping core, and its SQLite implementation.

The orchestrator, reconciler and image pipeline only talk to the
``Storage`` protocol. ``SqliteStorage`` adapts ``dragwiki.db`` to it,
commits after every write, and reports backend failures as
``StorageError``.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol, TypeVar

from dragwiki import db
from dragwiki.errors import StorageError
from dragwiki.models import (
    Appearance,
    Contestant,
    Franchise,
    JobStatus,
    ScrapingJob,
    Season,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Storage(Protocol):
    """Persistence operations the scraping core depends on.

    Every create/upsert is keyed by a natural key and safe to repeat.
    """

    def get_franchise(self, franchise_id: int) -> Franchise | None: ...

    def get_franchise_by_name(self, name: str) -> Franchise | None: ...

    def create_franchise(self, franchise: Franchise) -> Franchise: ...

    def list_franchises(self) -> list[Franchise]: ...

    def get_season(self, season_id: int) -> Season | None: ...

    def get_season_by_name(self, name: str) -> Season | None: ...

    def create_season(self, season: Season) -> Season: ...

    def update_season(self, season_id: int, **fields: object) -> None: ...

    def list_seasons(self, franchise_id: int) -> list[Season]: ...

    def get_contestant(self, contestant_id: int) -> Contestant | None: ...

    def get_contestant_by_name(self, drag_name: str) -> Contestant | None: ...

    def create_contestant(self, contestant: Contestant) -> Contestant: ...

    def update_contestant(self, contestant_id: int, **fields: object) -> None: ...

    def update_contestant_images(
        self, drag_name: str, image_urls: list[str]
    ) -> None: ...

    def get_appearance(
        self, contestant_id: int, season_id: int
    ) -> Appearance | None: ...

    def create_appearance(self, appearance: Appearance) -> bool: ...

    def list_appearances(self, contestant_id: int) -> list[Appearance]: ...

    def create_scraping_job(self, total_items: int = 0) -> ScrapingJob: ...

    def update_scraping_job(self, job_id: str, **fields: object) -> None: ...

    def get_scraping_job(self, job_id: str) -> ScrapingJob | None: ...


def _guarded(method: Callable[..., T]) -> Callable[..., T]:
    """Commit after *method* and translate sqlite errors to StorageError."""

    @functools.wraps(method)
    def wrapper(self: SqliteStorage, *args: object, **kwargs: object) -> T:
        try:
            with self.conn:
                return method(self, *args, **kwargs)
        except sqlite3.Error as exc:
            logger.error("Storage operation %s failed: %s", method.__name__, exc)
            raise StorageError(f"{method.__name__}: {exc}") from exc

    return wrapper


class SqliteStorage:
    """``Storage`` backed by an open SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    @classmethod
    def open(cls, path: str) -> SqliteStorage:
        """Open the database at *path* and make sure the schema exists."""
        conn = db.open_db(path)
        db.init_schema(conn)
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    # ── Franchises ─────────────────────────────────────────────────────────

    @_guarded
    def get_franchise(self, franchise_id: int) -> Franchise | None:
        return db.get_franchise(self.conn, franchise_id)

    @_guarded
    def get_franchise_by_name(self, name: str) -> Franchise | None:
        return db.get_franchise_by_name(self.conn, name)

    @_guarded
    def create_franchise(self, franchise: Franchise) -> Franchise:
        db.upsert_franchise(self.conn, franchise)
        stored = db.get_franchise(self.conn, franchise.franchise_id)
        assert stored is not None
        return stored

    @_guarded
    def list_franchises(self) -> list[Franchise]:
        return db.list_franchises(self.conn)

    # ── Seasons ────────────────────────────────────────────────────────────

    @_guarded
    def get_season(self, season_id: int) -> Season | None:
        return db.get_season(self.conn, season_id)

    @_guarded
    def get_season_by_name(self, name: str) -> Season | None:
        return db.get_season_by_name(self.conn, name)

    @_guarded
    def create_season(self, season: Season) -> Season:
        db.upsert_season(self.conn, season)
        stored = db.get_season(self.conn, season.season_id)
        assert stored is not None
        return stored

    @_guarded
    def update_season(self, season_id: int, **fields: object) -> None:
        db.update_season(self.conn, season_id, **fields)

    @_guarded
    def list_seasons(self, franchise_id: int) -> list[Season]:
        return db.list_seasons(self.conn, franchise_id)

    # ── Contestants ────────────────────────────────────────────────────────

    @_guarded
    def get_contestant(self, contestant_id: int) -> Contestant | None:
        return db.get_contestant(self.conn, contestant_id)

    @_guarded
    def get_contestant_by_name(self, drag_name: str) -> Contestant | None:
        return db.get_contestant_by_name(self.conn, drag_name)

    @_guarded
    def create_contestant(self, contestant: Contestant) -> Contestant:
        db.insert_contestant(self.conn, contestant)
        stored = db.get_contestant(self.conn, contestant.contestant_id)
        assert stored is not None
        return stored

    @_guarded
    def update_contestant(self, contestant_id: int, **fields: object) -> None:
        db.update_contestant(self.conn, contestant_id, **fields)

    @_guarded
    def update_contestant_images(self, drag_name: str, image_urls: list[str]) -> None:
        db.update_contestant_images(
            self.conn, drag_name, image_urls, datetime.now(timezone.utc)
        )

    # ── Appearances ────────────────────────────────────────────────────────

    @_guarded
    def get_appearance(self, contestant_id: int, season_id: int) -> Appearance | None:
        return db.get_appearance(self.conn, contestant_id, season_id)

    @_guarded
    def create_appearance(self, appearance: Appearance) -> bool:
        return db.insert_appearance(self.conn, appearance)

    @_guarded
    def list_appearances(self, contestant_id: int) -> list[Appearance]:
        return db.list_appearances(self.conn, contestant_id)

    # ── Scraping jobs ──────────────────────────────────────────────────────

    @_guarded
    def create_scraping_job(self, total_items: int = 0) -> ScrapingJob:
        job = ScrapingJob(
            job_id=uuid.uuid4().hex,
            status=JobStatus.RUNNING,
            total_items=total_items,
            started_at=datetime.now(timezone.utc),
        )
        db.insert_job(self.conn, job)
        return job

    @_guarded
    def update_scraping_job(self, job_id: str, **fields: object) -> None:
        db.update_job(self.conn, job_id, **fields)

    @_guarded
    def get_scraping_job(self, job_id: str) -> ScrapingJob | None:
        return db.get_job(self.conn, job_id)
