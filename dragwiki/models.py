"""Shared data containers for the dragwiki pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class NodeStatus(str, Enum):
    """Status of a franchise, season or contestant inside a running job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (NodeStatus.COMPLETED, NodeStatus.FAILED)


class JobStatus(str, Enum):
    """Status of a scraping job as seen by job-control callers."""

    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapeLevel(str, Enum):
    """Granularity of a scrape request."""

    FULL = "full"
    FRANCHISE = "franchise"
    SEASON = "season"
    CONTESTANT = "contestant"


@dataclass
class Franchise:
    """A top-level competition brand.

    Attributes:
        name: Unique display name (natural key, exact match).
        source_url: Page the franchise's seasons can be discovered from.
        franchise_id: Database primary key (set after insertion).
    """

    name: str
    source_url: str | None = None
    franchise_id: int | None = None


@dataclass
class Season:
    """A single competition cycle within a franchise.

    Attributes:
        name: Unique season name (natural key).
        franchise_id: Foreign key to the owning franchise.
        year: Year the season aired, if known.
        source_url: Page holding the contestant table.
        is_scraped: Set once contestant extraction completed.
        season_id: Database primary key (set after insertion).
    """

    name: str
    franchise_id: int
    year: int | None = None
    source_url: str | None = None
    is_scraped: bool = False
    season_id: int | None = None


@dataclass
class Contestant:
    """A competitor, possibly appearing in several seasons.

    Attributes:
        drag_name: Stage name, used as the natural dedup key.
        real_name: Legal or birth name, if published.
        hometown: Hometown as listed in the source table.
        biography: Free-text biography.
        photo_url: Primary portrait URL.
        metadata_source_url: Page the contestant's details and images come from.
        image_urls: Public URLs of stored images.
        image_count: Number of stored images.
        last_image_scrape_at: When images were last scraped.
        contestant_id: Database primary key (set after insertion).
    """

    drag_name: str
    real_name: str | None = None
    hometown: str | None = None
    biography: str | None = None
    photo_url: str | None = None
    metadata_source_url: str | None = None
    image_urls: list[str] = field(default_factory=list)
    image_count: int = 0
    last_image_scrape_at: datetime | None = None
    contestant_id: int | None = None


@dataclass
class Appearance:
    """One contestant competing in one season.

    Attributes:
        contestant_id: Foreign key to the contestant.
        season_id: Foreign key to the season.
        age: Age at filming, if listed.
        outcome: Normalised placement (e.g. "Winner", "Eliminated").
        appearance_id: Database primary key (set after insertion).
    """

    contestant_id: int
    season_id: int
    age: int | None = None
    outcome: str | None = None
    appearance_id: int | None = None


@dataclass
class ScrapingJob:
    """Persistent record of one scrape run.

    Attributes:
        job_id: Generated identifier.
        status: One of pending/running/completed/failed.
        progress: Overall percentage, 0-100.
        total_items: Number of seasons (or contestants) in scope.
        current_item: Human-readable label of the node being processed.
        error_message: Reason for a failed job.
        started_at: When the walk started.
        completed_at: When the job reached a terminal state.
    """

    job_id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    total_items: int = 0
    current_item: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class RowRecord:
    """A contestant row extracted from a season table.

    Attributes:
        drag_name: Stage name (always non-empty).
        age: Age at filming.
        hometown: Hometown text.
        real_name: Real name text.
        outcome: Normalised outcome.
        source_url: Link target of the drag-name cell, if any.
    """

    drag_name: str
    age: int | None = None
    hometown: str | None = None
    real_name: str | None = None
    outcome: str | None = None
    source_url: str | None = None


# Fields a recipe column may target
ROW_FIELDS: tuple[str, ...] = (
    "drag_name",
    "age",
    "hometown",
    "real_name",
    "outcome",
)

# Default database filename
DB_FILENAME = "dragwiki.db"
