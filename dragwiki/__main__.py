"""CLI entry point for dragwiki.

Usage::

    python -m dragwiki --scope full
    python -m dragwiki --scope franchise --target "RuPaul's Drag Race UK"
    python -m dragwiki --scope season --target "RuPaul's Drag Race Season 16" --images
    python -m dragwiki --scope contestant --target "Bianca Del Rio" --driver simulated
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dragwiki.config import DRIVER_CHOICES, AppConfig
from dragwiki.errors import DragWikiError, UnknownTargetError
from dragwiki.models import JobStatus, ScrapeLevel
from dragwiki.orchestrator import JobDescriptor, Scope, ScrapeOrchestrator
from dragwiki.progress import TqdmProgressSink
from dragwiki.storage import SqliteStorage

logger = logging.getLogger("dragwiki")


def resolve_scope(storage: SqliteStorage, level: str, target: str | None) -> Scope:
    """Turn a scope level and natural-key target into a Scope.

    Raises:
        UnknownTargetError: If *target* is missing or names nothing.
    """
    scrape_level = ScrapeLevel(level)
    if scrape_level is ScrapeLevel.FULL:
        return Scope.full()
    if not target:
        raise UnknownTargetError(f"--target is required for scope {level!r}")

    if scrape_level is ScrapeLevel.FRANCHISE:
        franchise = storage.get_franchise_by_name(target)
        if franchise is None or franchise.franchise_id is None:
            raise UnknownTargetError(f"Unknown franchise: {target}")
        return Scope.franchise(franchise.franchise_id)
    if scrape_level is ScrapeLevel.SEASON:
        season = storage.get_season_by_name(target)
        if season is None or season.season_id is None:
            raise UnknownTargetError(f"Unknown season: {target}")
        return Scope.season(season.season_id)
    contestant = storage.get_contestant_by_name(target)
    if contestant is None or contestant.contestant_id is None:
        raise UnknownTargetError(f"Unknown contestant: {target}")
    return Scope.contestant(contestant.contestant_id)


async def run_scrape(config: AppConfig, level: str, target: str | None) -> JobDescriptor:
    """Run one scrape job to completion and return its descriptor."""
    storage = SqliteStorage.open(config.storage.db_path)
    bar = TqdmProgressSink(desc=f"Scraping ({level})")
    try:
        orchestrator = ScrapeOrchestrator(storage, config, sink=bar)
        orchestrator.seed()
        await orchestrator.start(resolve_scope(storage, level, target))
        return await orchestrator.wait()
    finally:
        bar.close()
        storage.close()


def main() -> None:
    """Parse CLI arguments and run a scrape job."""
    parser = argparse.ArgumentParser(
        prog="dragwiki",
        description="Scrape drag competition contestants from wiki season pages.",
    )
    parser.add_argument(
        "--scope",
        type=str,
        required=True,
        choices=[level.value for level in ScrapeLevel],
        help="What to scrape",
    )
    parser.add_argument(
        "--target",
        type=str,
        default=None,
        help="Franchise, season or contestant name (not used for --scope full)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (default: $DRAGWIKI_DB or dragwiki.db)",
    )
    parser.add_argument(
        "--driver",
        type=str,
        default=None,
        choices=list(DRIVER_CHOICES),
        help="Page driver (default: $DRAGWIKI_DRIVER or auto)",
    )
    parser.add_argument(
        "--images",
        action="store_true",
        help="Also scrape contestant images during season walks",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    scraping: dict[str, object] = {}
    if args.driver:
        scraping["driver"] = args.driver
    if args.no_headless:
        scraping["headless"] = False
    images: dict[str, object] = {"scrape_during_walk": True} if args.images else {}
    storage: dict[str, object] = {"db_path": args.db} if args.db else {}

    try:
        config = AppConfig.from_env().with_overrides(
            scraping=scraping, images=images, storage=storage
        )
        job = asyncio.run(run_scrape(config, args.scope, args.target))
    except DragWikiError as exc:
        parser.exit(2, f"dragwiki: error: {exc}\n")

    summary = job.summary
    if summary is not None:
        logger.info(
            "Job %s %s via %s driver: %d seasons completed, %d failed, "
            "%d contestants created, %d updated, %d unchanged, "
            "%d appearances created, %d rows skipped, %d images downloaded.",
            job.job_id,
            job.status.value,
            summary.driver.value if summary.driver else "no",
            summary.seasons_completed,
            summary.seasons_failed,
            summary.contestants_created,
            summary.contestants_updated,
            summary.contestants_unchanged,
            summary.appearances_created,
            summary.rows_skipped,
            summary.images_downloaded,
        )
    if job.status is not JobStatus.COMPLETED:
        parser.exit(1, f"dragwiki: job failed: {job.error_message}\n")


if __name__ == "__main__":
    main()
