"""SQLite database layer for dragwiki.

Schema creation and parameterised queries for franchises, seasons,
contestants, appearances and scraping jobs. Natural keys (franchise name,
season name, drag name, contestant/season pair) carry UNIQUE constraints
so every insert can be written as an idempotent upsert.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

import orjson

from dragwiki.models import (
    DB_FILENAME,
    Appearance,
    Contestant,
    Franchise,
    JobStatus,
    ScrapingJob,
    Season,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS franchises (
    franchise_id  INTEGER PRIMARY KEY,
    name          TEXT    NOT NULL UNIQUE,
    source_url    TEXT,
    created_at    TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS seasons (
    season_id     INTEGER PRIMARY KEY,
    name          TEXT    NOT NULL UNIQUE,
    franchise_id  INTEGER NOT NULL REFERENCES franchises(franchise_id),
    year          INTEGER,
    source_url    TEXT,
    is_scraped    INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS contestants (
    contestant_id        INTEGER PRIMARY KEY,
    drag_name            TEXT    NOT NULL UNIQUE,
    real_name            TEXT,
    hometown             TEXT,
    biography            TEXT,
    photo_url            TEXT,
    metadata_source_url  TEXT,
    image_urls           TEXT    NOT NULL DEFAULT '[]',
    image_count          INTEGER NOT NULL DEFAULT 0,
    last_image_scrape_at TEXT,
    created_at           TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS appearances (
    appearance_id INTEGER PRIMARY KEY,
    contestant_id INTEGER NOT NULL REFERENCES contestants(contestant_id),
    season_id     INTEGER NOT NULL REFERENCES seasons(season_id),
    age           INTEGER,
    outcome       TEXT,
    UNIQUE(contestant_id, season_id)
);

CREATE TABLE IF NOT EXISTS scraping_jobs (
    job_id        TEXT    PRIMARY KEY,
    status        TEXT    NOT NULL DEFAULT 'pending',
    progress      INTEGER NOT NULL DEFAULT 0,
    total_items   INTEGER NOT NULL DEFAULT 0,
    current_item  TEXT,
    error_message TEXT,
    started_at    TEXT,
    completed_at  TEXT
);

CREATE INDEX IF NOT EXISTS idx_seasons_franchise
    ON seasons(franchise_id);
CREATE INDEX IF NOT EXISTS idx_appearances_season
    ON appearances(season_id);
"""

# Columns callers may change through update_contestant / update_season
CONTESTANT_UPDATABLE: frozenset[str] = frozenset(
    {"real_name", "hometown", "biography", "photo_url", "metadata_source_url"}
)
SEASON_UPDATABLE: frozenset[str] = frozenset({"year", "source_url", "is_scraped"})
JOB_UPDATABLE: frozenset[str] = frozenset(
    {
        "status",
        "progress",
        "total_items",
        "current_item",
        "error_message",
        "started_at",
        "completed_at",
    }
)


def open_db(path: str = DB_FILENAME) -> sqlite3.Connection:
    """Open (or create) the SQLite database with recommended pragmas.

    Args:
        path: Filesystem path to the database file.

    Returns:
        An open sqlite3.Connection with WAL mode and foreign keys enabled.
    """
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist.

    Args:
        conn: An open database connection.
    """
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _assignments(fields: dict[str, object], allowed: frozenset[str]) -> str:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")
    return ", ".join(f"{name} = ?" for name in fields)


# ── Franchises ─────────────────────────────────────────────────────────────


def _franchise_from_row(row: sqlite3.Row) -> Franchise:
    return Franchise(
        name=row["name"],
        source_url=row["source_url"],
        franchise_id=row["franchise_id"],
    )


def upsert_franchise(conn: sqlite3.Connection, franchise: Franchise) -> int:
    """Insert a franchise, or keep the existing row for that name.

    An existing row is never overwritten; only a missing source URL is
    filled in.

    Args:
        conn: Database connection.
        franchise: Franchise to insert.

    Returns:
        The franchise_id (new or existing).
    """
    conn.execute(
        """\
        INSERT INTO franchises (name, source_url) VALUES (?, ?)
        ON CONFLICT(name) DO UPDATE
            SET source_url = COALESCE(source_url, excluded.source_url)
        """,
        (franchise.name, franchise.source_url),
    )
    row = conn.execute(
        "SELECT franchise_id FROM franchises WHERE name = ?", (franchise.name,)
    ).fetchone()
    franchise_id: int = row[0]
    franchise.franchise_id = franchise_id
    return franchise_id


def get_franchise(conn: sqlite3.Connection, franchise_id: int) -> Franchise | None:
    row = conn.execute(
        "SELECT * FROM franchises WHERE franchise_id = ?", (franchise_id,)
    ).fetchone()
    return _franchise_from_row(row) if row else None


def get_franchise_by_name(conn: sqlite3.Connection, name: str) -> Franchise | None:
    row = conn.execute("SELECT * FROM franchises WHERE name = ?", (name,)).fetchone()
    return _franchise_from_row(row) if row else None


def list_franchises(conn: sqlite3.Connection) -> list[Franchise]:
    rows = conn.execute("SELECT * FROM franchises ORDER BY franchise_id").fetchall()
    return [_franchise_from_row(r) for r in rows]


# ── Seasons ────────────────────────────────────────────────────────────────


def _season_from_row(row: sqlite3.Row) -> Season:
    return Season(
        name=row["name"],
        franchise_id=row["franchise_id"],
        year=row["year"],
        source_url=row["source_url"],
        is_scraped=bool(row["is_scraped"]),
        season_id=row["season_id"],
    )


def upsert_season(conn: sqlite3.Connection, season: Season) -> int:
    """Insert a season, or keep the existing row for that name.

    Args:
        conn: Database connection.
        season: Season to insert.

    Returns:
        The season_id (new or existing).
    """
    conn.execute(
        """\
        INSERT INTO seasons (name, franchise_id, year, source_url, is_scraped)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(name) DO UPDATE SET
            year       = COALESCE(year, excluded.year),
            source_url = COALESCE(source_url, excluded.source_url)
        """,
        (
            season.name,
            season.franchise_id,
            season.year,
            season.source_url,
            int(season.is_scraped),
        ),
    )
    row = conn.execute(
        "SELECT season_id FROM seasons WHERE name = ?", (season.name,)
    ).fetchone()
    season_id: int = row[0]
    season.season_id = season_id
    return season_id


def get_season(conn: sqlite3.Connection, season_id: int) -> Season | None:
    row = conn.execute(
        "SELECT * FROM seasons WHERE season_id = ?", (season_id,)
    ).fetchone()
    return _season_from_row(row) if row else None


def get_season_by_name(conn: sqlite3.Connection, name: str) -> Season | None:
    row = conn.execute("SELECT * FROM seasons WHERE name = ?", (name,)).fetchone()
    return _season_from_row(row) if row else None


def list_seasons(conn: sqlite3.Connection, franchise_id: int) -> list[Season]:
    rows = conn.execute(
        "SELECT * FROM seasons WHERE franchise_id = ? ORDER BY season_id",
        (franchise_id,),
    ).fetchall()
    return [_season_from_row(r) for r in rows]


def update_season(
    conn: sqlite3.Connection,
    season_id: int,
    **fields: object,
) -> None:
    """Update selected season columns.

    Args:
        conn: Database connection.
        season_id: The season to update.
        **fields: Column values (year, source_url, is_scraped).

    Raises:
        ValueError: If a column is not updatable.
    """
    if not fields:
        return
    if "is_scraped" in fields:
        fields["is_scraped"] = int(bool(fields["is_scraped"]))
    conn.execute(
        f"UPDATE seasons SET {_assignments(fields, SEASON_UPDATABLE)} "
        "WHERE season_id = ?",
        (*fields.values(), season_id),
    )


# ── Contestants ────────────────────────────────────────────────────────────


def _contestant_from_row(row: sqlite3.Row) -> Contestant:
    return Contestant(
        drag_name=row["drag_name"],
        real_name=row["real_name"],
        hometown=row["hometown"],
        biography=row["biography"],
        photo_url=row["photo_url"],
        metadata_source_url=row["metadata_source_url"],
        image_urls=list(orjson.loads(row["image_urls"] or "[]")),
        image_count=row["image_count"],
        last_image_scrape_at=_parse_ts(row["last_image_scrape_at"]),
        contestant_id=row["contestant_id"],
    )


def insert_contestant(conn: sqlite3.Connection, contestant: Contestant) -> int:
    """Insert a contestant, returning the existing ID if the name is taken.

    Args:
        conn: Database connection.
        contestant: Contestant to insert.

    Returns:
        The contestant_id (new or existing).
    """
    conn.execute(
        """\
        INSERT INTO contestants
            (drag_name, real_name, hometown, biography, photo_url,
             metadata_source_url, image_urls, image_count)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(drag_name) DO NOTHING
        """,
        (
            contestant.drag_name,
            contestant.real_name,
            contestant.hometown,
            contestant.biography,
            contestant.photo_url,
            contestant.metadata_source_url,
            orjson.dumps(contestant.image_urls).decode(),
            contestant.image_count,
        ),
    )
    row = conn.execute(
        "SELECT contestant_id FROM contestants WHERE drag_name = ?",
        (contestant.drag_name,),
    ).fetchone()
    contestant_id: int = row[0]
    contestant.contestant_id = contestant_id
    return contestant_id


def get_contestant(conn: sqlite3.Connection, contestant_id: int) -> Contestant | None:
    row = conn.execute(
        "SELECT * FROM contestants WHERE contestant_id = ?", (contestant_id,)
    ).fetchone()
    return _contestant_from_row(row) if row else None


def get_contestant_by_name(
    conn: sqlite3.Connection,
    drag_name: str,
) -> Contestant | None:
    row = conn.execute(
        "SELECT * FROM contestants WHERE drag_name = ?", (drag_name,)
    ).fetchone()
    return _contestant_from_row(row) if row else None


def update_contestant(
    conn: sqlite3.Connection,
    contestant_id: int,
    **fields: object,
) -> None:
    """Update selected contestant columns.

    Args:
        conn: Database connection.
        contestant_id: The contestant to update.
        **fields: Column values; see ``CONTESTANT_UPDATABLE``.

    Raises:
        ValueError: If a column is not updatable.
    """
    if not fields:
        return
    conn.execute(
        f"UPDATE contestants SET {_assignments(fields, CONTESTANT_UPDATABLE)} "
        "WHERE contestant_id = ?",
        (*fields.values(), contestant_id),
    )


def update_contestant_images(
    conn: sqlite3.Connection,
    drag_name: str,
    image_urls: list[str],
    scraped_at: datetime,
) -> None:
    """Replace a contestant's stored image list.

    Args:
        conn: Database connection.
        drag_name: Contestant natural key.
        image_urls: Public URLs of the stored images.
        scraped_at: Timestamp of the image scrape.
    """
    conn.execute(
        """\
        UPDATE contestants
           SET image_urls = ?, image_count = ?, last_image_scrape_at = ?
         WHERE drag_name = ?
        """,
        (
            orjson.dumps(image_urls).decode(),
            len(image_urls),
            _ts(scraped_at),
            drag_name,
        ),
    )


# ── Appearances ────────────────────────────────────────────────────────────


def _appearance_from_row(row: sqlite3.Row) -> Appearance:
    return Appearance(
        contestant_id=row["contestant_id"],
        season_id=row["season_id"],
        age=row["age"],
        outcome=row["outcome"],
        appearance_id=row["appearance_id"],
    )


def insert_appearance(conn: sqlite3.Connection, appearance: Appearance) -> bool:
    """Insert an appearance unless the contestant/season pair exists.

    Args:
        conn: Database connection.
        appearance: Appearance to insert.

    Returns:
        True if a row was inserted, False if the pair already existed.
    """
    cursor = conn.execute(
        """\
        INSERT INTO appearances (contestant_id, season_id, age, outcome)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(contestant_id, season_id) DO NOTHING
        """,
        (
            appearance.contestant_id,
            appearance.season_id,
            appearance.age,
            appearance.outcome,
        ),
    )
    row = conn.execute(
        "SELECT appearance_id FROM appearances WHERE contestant_id = ? AND season_id = ?",
        (appearance.contestant_id, appearance.season_id),
    ).fetchone()
    appearance.appearance_id = row[0]
    return cursor.rowcount > 0


def get_appearance(
    conn: sqlite3.Connection,
    contestant_id: int,
    season_id: int,
) -> Appearance | None:
    row = conn.execute(
        "SELECT * FROM appearances WHERE contestant_id = ? AND season_id = ?",
        (contestant_id, season_id),
    ).fetchone()
    return _appearance_from_row(row) if row else None


def list_appearances(conn: sqlite3.Connection, contestant_id: int) -> list[Appearance]:
    rows = conn.execute(
        "SELECT * FROM appearances WHERE contestant_id = ? ORDER BY appearance_id",
        (contestant_id,),
    ).fetchall()
    return [_appearance_from_row(r) for r in rows]


# ── Scraping jobs ──────────────────────────────────────────────────────────


def _job_from_row(row: sqlite3.Row) -> ScrapingJob:
    return ScrapingJob(
        job_id=row["job_id"],
        status=JobStatus(row["status"]),
        progress=row["progress"],
        total_items=row["total_items"],
        current_item=row["current_item"],
        error_message=row["error_message"],
        started_at=_parse_ts(row["started_at"]),
        completed_at=_parse_ts(row["completed_at"]),
    )


def insert_job(conn: sqlite3.Connection, job: ScrapingJob) -> None:
    conn.execute(
        """\
        INSERT INTO scraping_jobs
            (job_id, status, progress, total_items, current_item,
             error_message, started_at, completed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.job_id,
            job.status.value,
            job.progress,
            job.total_items,
            job.current_item,
            job.error_message,
            _ts(job.started_at),
            _ts(job.completed_at),
        ),
    )


def update_job(conn: sqlite3.Connection, job_id: str, **fields: object) -> None:
    """Update selected scraping-job columns.

    Args:
        conn: Database connection.
        job_id: The job to update.
        **fields: Column values; enums and datetimes are converted.

    Raises:
        ValueError: If a column is not updatable.
    """
    if not fields:
        return
    values: list[object] = []
    for value in fields.values():
        if isinstance(value, JobStatus):
            value = value.value
        elif isinstance(value, datetime):
            value = _ts(value)
        values.append(value)
    conn.execute(
        f"UPDATE scraping_jobs SET {_assignments(fields, JOB_UPDATABLE)} "
        "WHERE job_id = ?",
        (*values, job_id),
    )


def get_job(conn: sqlite3.Connection, job_id: str) -> ScrapingJob | None:
    row = conn.execute(
        "SELECT * FROM scraping_jobs WHERE job_id = ?", (job_id,)
    ).fetchone()
    return _job_from_row(row) if row else None
