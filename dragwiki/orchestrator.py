"""Scrape orchestrator: job control and the franchise -> season -> contestant walk.

One ``ScrapeOrchestrator`` owns at most one running job. ``start`` seeds the
catalog, plans the walk and returns at once; the walk itself runs as an
``asyncio`` task. Failures are absorbed per contestant and per season and
reported through the progress tracker and the job summary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from dragwiki.config import AppConfig, ScrapingConfig
from dragwiki.errors import (
    AlreadyRunningError,
    ConfigError,
    DriverInitError,
    ExtractionEmptyError,
    NotRunningError,
    PageLoadError,
    StorageError,
    UnknownTargetError,
)
from dragwiki.fetchers import FetcherSelection, PageFetcher, select_fetcher
from dragwiki.fetchers.base import DriverKind
from dragwiki.images import ImagePipeline
from dragwiki.lookup import find_contestant_source_url
from dragwiki.models import (
    Contestant,
    Franchise,
    JobStatus,
    NodeStatus,
    ScrapeLevel,
    Season,
)
from dragwiki.object_store import ObjectStore, build_object_store
from dragwiki.progress import ProgressSink, ProgressSnapshot, ProgressTracker
from dragwiki.recipes import RecipeRegistry, build_default_registry
from dragwiki.recipes.seeds import SEED_FRANCHISES, SeedFranchise
from dragwiki.recipes.types import ExtractionRecipe
from dragwiki.reconcile import ReconcileOutcome, Reconciler
from dragwiki.storage import Storage
from dragwiki.wiki_parsing import discover_season_links

logger = logging.getLogger(__name__)

FetcherFactory = Callable[[ScrapingConfig], Awaitable[FetcherSelection]]

UNASSIGNED = "Unassigned"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ── Job descriptors ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Scope:
    """What a job scrapes.

    Attributes:
        level: Granularity of the scrape.
        target_id: Franchise, season or contestant id (None for full).
    """

    level: ScrapeLevel
    target_id: int | None = None

    def __post_init__(self) -> None:
        if (self.level is ScrapeLevel.FULL) != (self.target_id is None):
            raise ValueError(f"Invalid scope: {self.level.value} {self.target_id!r}")

    @classmethod
    def full(cls) -> Scope:
        return cls(ScrapeLevel.FULL)

    @classmethod
    def franchise(cls, franchise_id: int) -> Scope:
        return cls(ScrapeLevel.FRANCHISE, franchise_id)

    @classmethod
    def season(cls, season_id: int) -> Scope:
        return cls(ScrapeLevel.SEASON, season_id)

    @classmethod
    def contestant(cls, contestant_id: int) -> Scope:
        return cls(ScrapeLevel.CONTESTANT, contestant_id)


@dataclass
class JobSummary:
    """Counters accumulated over one walk."""

    driver: DriverKind | None = None
    seasons_completed: int = 0
    seasons_failed: int = 0
    seasons_discovered: int = 0
    contestants_created: int = 0
    contestants_updated: int = 0
    contestants_unchanged: int = 0
    contestants_failed: int = 0
    appearances_created: int = 0
    rows_skipped: int = 0
    images_downloaded: int = 0


@dataclass(frozen=True)
class JobDescriptor:
    job_id: str | None
    status: JobStatus
    scope: Scope | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    summary: JobSummary | None = None

    @classmethod
    def idle(cls) -> JobDescriptor:
        return cls(job_id=None, status=JobStatus.IDLE)


@dataclass(frozen=True)
class StatusReport:
    job: JobDescriptor
    snapshot: ProgressSnapshot


# ── Internal run state ─────────────────────────────────────────────────────


@dataclass
class _PlannedFranchise:
    franchise: Franchise
    seasons: list[Season]


@dataclass
class _Run:
    """State of one job, owned by its walk task."""

    job_id: str
    scope: Scope
    tracker: ProgressTracker
    plan: list[_PlannedFranchise]
    contestant: Contestant | None = None
    contestant_path: tuple[str, str, str] | None = None
    status: JobStatus = JobStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    error_message: str | None = None
    summary: JobSummary = field(default_factory=JobSummary)
    fetcher: PageFetcher | None = None
    images: ImagePipeline | None = None
    cancelled: bool = False


class ScrapeOrchestrator:
    """Runs scrape jobs against a storage backend.

    Args:
        storage: Persistence backend.
        config: Application settings.
        registry: Recipe registry (built-ins when None). Frozen on start.
        sink: Receives a progress snapshot after every status change.
        fetcher_factory: Returns the started page fetcher for a job.
        object_store: Image store (built from ``config.storage`` when None).
        seeds: Franchises and seasons upserted before every job.
    """

    def __init__(
        self,
        storage: Storage,
        config: AppConfig,
        registry: RecipeRegistry | None = None,
        sink: ProgressSink | None = None,
        fetcher_factory: FetcherFactory | None = None,
        object_store: ObjectStore | None = None,
        seeds: Sequence[SeedFranchise] = SEED_FRANCHISES,
    ) -> None:
        self.storage = storage
        self.config = config
        self.registry = registry or build_default_registry()
        self.sink = sink
        self.fetcher_factory = fetcher_factory or select_fetcher
        self.seeds = seeds
        self.reconciler = Reconciler(storage)
        self._object_store = object_store
        self._state = OrchestratorState.IDLE
        self._run: _Run | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            self._object_store = build_object_store(self.config.storage)
        return self._object_store

    # ── Job control ────────────────────────────────────────────────────────

    async def start(self, scope: Scope) -> JobDescriptor:
        """Start a scrape job in the background.

        Args:
            scope: What to scrape.

        Returns:
            Descriptor of the new, running job.

        Raises:
            AlreadyRunningError: If a job is running.
            UnknownTargetError: If the scope's target id does not exist.
        """
        if self._state is OrchestratorState.RUNNING:
            raise AlreadyRunningError("A scrape job is already running")

        self.seed()
        plan, contestant, contestant_path = self._plan(scope)
        self.registry.freeze()

        total = 1 if contestant is not None else sum(len(p.seasons) for p in plan)
        job = self.storage.create_scraping_job(total_items=total)
        tracker = ProgressTracker(job.job_id, scope.level)
        for planned in plan:
            tracker.add_franchise(planned.franchise.name)
            for season in planned.seasons:
                tracker.add_season(planned.franchise.name, season.name)
        if contestant_path is not None:
            tracker.add_contestant(*contestant_path)

        run = _Run(
            job_id=job.job_id,
            scope=scope,
            tracker=tracker,
            plan=plan,
            contestant=contestant,
            contestant_path=contestant_path,
        )
        if job.started_at is not None:
            run.started_at = job.started_at
        self._run = run
        self._state = OrchestratorState.RUNNING
        logger.info("Started job %s (%s)", job.job_id, scope.level.value)
        self._emit(run, f"Starting {scope.level.value} scrape")
        self._task = asyncio.create_task(self._execute(run), name=f"scrape-{job.job_id}")
        return self._describe(run)

    async def stop(self) -> JobDescriptor:
        """Mark the running job failed and release the browser.

        Pages already being loaded are not interrupted; whatever they
        return afterwards is discarded.

        Raises:
            NotRunningError: If no job is running.
            Exception: Whatever the fetcher raises while shutting down. The
                orchestrator is idle again either way.
        """
        run = self._run
        if self._state is not OrchestratorState.RUNNING or run is None:
            raise NotRunningError("No scrape job is running")

        run.cancelled = True
        self._mark_terminal(run, JobStatus.FAILED, "Stopped by user")
        self._publish(run.tracker.snapshot())
        try:
            if run.fetcher is not None:
                await run.fetcher.shutdown()
        finally:
            self._state = OrchestratorState.IDLE
        logger.info("Stopped job %s", run.job_id)
        return self._describe(run)

    def get_status(self) -> StatusReport:
        run = self._run
        if run is None:
            return StatusReport(job=JobDescriptor.idle(), snapshot=ProgressSnapshot.idle())
        return StatusReport(job=self._describe(run), snapshot=run.tracker.snapshot())

    def clear(self) -> None:
        """Forget the last finished job.

        Raises:
            AlreadyRunningError: If a job is still running.
        """
        if self._state is OrchestratorState.RUNNING:
            raise AlreadyRunningError("Cannot clear a running job")
        self._run = None
        self._state = OrchestratorState.IDLE

    async def wait(self) -> JobDescriptor:
        """Wait for the current walk to finish and return its descriptor."""
        if self._task is not None:
            await self._task
        run = self._run
        return self._describe(run) if run is not None else JobDescriptor.idle()

    # ── Planning ───────────────────────────────────────────────────────────

    def seed(self) -> None:
        """Upsert the seed franchises and seasons; existing rows are kept."""
        for seed in self.seeds:
            franchise = self.reconciler.upsert_franchise(seed.name, seed.source_url)
            assert franchise.franchise_id is not None
            for season in seed.seasons:
                self.reconciler.upsert_season(
                    season.name,
                    franchise.franchise_id,
                    season.year,
                    season.source_url,
                )

    def _franchise_plan(self, franchise: Franchise) -> _PlannedFranchise:
        assert franchise.franchise_id is not None
        return _PlannedFranchise(franchise, self.storage.list_seasons(franchise.franchise_id))

    def _plan(
        self,
        scope: Scope,
    ) -> tuple[list[_PlannedFranchise], Contestant | None, tuple[str, str, str] | None]:
        level, target = scope.level, scope.target_id
        if level is ScrapeLevel.FULL:
            return [self._franchise_plan(f) for f in self.storage.list_franchises()], None, None

        assert target is not None
        if level is ScrapeLevel.FRANCHISE:
            franchise = self.storage.get_franchise(target)
            if franchise is None:
                raise UnknownTargetError(f"No franchise with id {target}")
            return [self._franchise_plan(franchise)], None, None

        if level is ScrapeLevel.SEASON:
            season = self.storage.get_season(target)
            if season is None:
                raise UnknownTargetError(f"No season with id {target}")
            franchise = self.storage.get_franchise(season.franchise_id)
            if franchise is None:
                raise UnknownTargetError(f"Season {target} has no franchise")
            return [_PlannedFranchise(franchise, [season])], None, None

        contestant = self.storage.get_contestant(target)
        if contestant is None:
            raise UnknownTargetError(f"No contestant with id {target}")
        return [], contestant, self._contestant_path(contestant)

    def _contestant_path(self, contestant: Contestant) -> tuple[str, str, str]:
        assert contestant.contestant_id is not None
        for appearance in self.storage.list_appearances(contestant.contestant_id):
            season = self.storage.get_season(appearance.season_id)
            if season is None:
                continue
            franchise = self.storage.get_franchise(season.franchise_id)
            if franchise is not None:
                return franchise.name, season.name, contestant.drag_name
        return UNASSIGNED, UNASSIGNED, contestant.drag_name

    # ── Walk ───────────────────────────────────────────────────────────────

    async def _execute(self, run: _Run) -> None:
        try:
            selection = await self.fetcher_factory(self.config.scraping)
        except DriverInitError as exc:
            logger.error("No page driver available: %s", exc)
            if not run.cancelled:
                self._finish(run, JobStatus.FAILED, f"No page driver available: {exc}")
            return

        run.fetcher = selection.fetcher
        run.summary.driver = selection.kind
        if run.cancelled:
            await selection.fetcher.shutdown()
            return
        logger.info("Job %s using %s driver", run.job_id, selection.kind.value)

        try:
            if run.contestant is not None:
                ok = await self._walk_contestant(run)
            else:
                await self._walk(run)
                total = run.summary.seasons_completed + run.summary.seasons_failed
                ok = total == 0 or run.summary.seasons_completed > 0
        except Exception as exc:
            logger.exception("Job %s crashed", run.job_id)
            if not run.cancelled:
                self._finish(run, JobStatus.FAILED, f"Unexpected error: {exc}")
            return
        finally:
            await selection.fetcher.shutdown()

        if run.cancelled:
            return
        if ok:
            self._finish(run, JobStatus.COMPLETED, self._summary_message(run))
        else:
            self._finish(run, JobStatus.FAILED, "Every scraped node failed")

    async def _walk(self, run: _Run) -> None:
        tracker = run.tracker
        for planned in run.plan:
            if run.cancelled:
                return
            franchise = planned.franchise
            fpath = (franchise.name,)
            tracker.set_status(fpath, NodeStatus.RUNNING)
            self._emit(run, f"Processing franchise: {franchise.name}")

            try:
                recipe = self.registry.resolve(franchise.name)
            except ConfigError as exc:
                logger.error("No recipe for %s: %s", franchise.name, exc)
                for season in planned.seasons:
                    tracker.set_status((franchise.name, season.name), NodeStatus.FAILED)
                    run.summary.seasons_failed += 1
                tracker.set_status(fpath, NodeStatus.FAILED)
                self._emit(run, f"No recipe for {franchise.name}")
                continue

            seasons = list(planned.seasons)
            if run.scope.level is not ScrapeLevel.SEASON:
                seasons += await self._discover_seasons(run, franchise, recipe, seasons)

            completed_before = run.summary.seasons_completed
            for index, season in enumerate(seasons):
                if run.cancelled:
                    return
                await self._scrape_season(run, franchise, season, recipe)
                if index < len(seasons) - 1:
                    await self._pace(run)

            ok = not seasons or run.summary.seasons_completed > completed_before
            tracker.set_status(fpath, NodeStatus.COMPLETED if ok else NodeStatus.FAILED)
            self._emit(run, f"Finished franchise: {franchise.name}")

    async def _pace(self, run: _Run) -> None:
        if run.summary.driver is DriverKind.REAL and self.config.scraping.request_delay_s > 0:
            await asyncio.sleep(self.config.scraping.request_delay_s)

    async def _discover_seasons(
        self,
        run: _Run,
        franchise: Franchise,
        recipe: ExtractionRecipe,
        known: list[Season],
    ) -> list[Season]:
        """Add seasons linked from the franchise page to the walk."""
        if recipe.season_links is None or not franchise.source_url:
            return []
        assert run.fetcher is not None and franchise.franchise_id is not None

        try:
            handle = await run.fetcher.open(franchise.source_url)
            try:
                soup = await run.fetcher.page_soup(handle)
            finally:
                await run.fetcher.close(handle)
        except PageLoadError as exc:
            logger.warning("Could not load franchise page %s: %s", franchise.source_url, exc)
            return []
        if run.cancelled:
            return []

        known_names = {s.name for s in known}
        discovered: list[Season] = []
        for name, url in discover_season_links(soup, recipe.season_links, franchise.source_url):
            if name in known_names:
                continue
            season = self.reconciler.upsert_season(name, franchise.franchise_id, None, url)
            if season.franchise_id != franchise.franchise_id:
                continue
            known_names.add(season.name)
            run.tracker.add_season(franchise.name, season.name)
            discovered.append(season)

        if discovered:
            run.summary.seasons_discovered += len(discovered)
            logger.info("Discovered %d seasons for %s", len(discovered), franchise.name)
            self._emit(run, f"Discovered {len(discovered)} seasons for {franchise.name}")
        return discovered

    async def _scrape_season(
        self,
        run: _Run,
        franchise: Franchise,
        season: Season,
        recipe: ExtractionRecipe,
    ) -> None:
        assert run.fetcher is not None and season.season_id is not None
        tracker = run.tracker
        path = (franchise.name, season.name)
        tracker.set_status(path, NodeStatus.RUNNING, 0.0)
        self._emit(run, f"Processing season: {season.name}")

        try:
            if not season.source_url:
                raise PageLoadError(f"{season.name} has no source URL")
            handle = await run.fetcher.open(season.source_url)
            try:
                extraction = await run.fetcher.extract_table(handle, recipe)
            finally:
                await run.fetcher.close(handle)
        except (PageLoadError, ExtractionEmptyError) as exc:
            if run.cancelled:
                return
            logger.error("Season %s failed: %s", season.name, exc)
            tracker.set_status(path, NodeStatus.FAILED)
            run.summary.seasons_failed += 1
            self._emit(run, f"Season failed: {season.name}")
            self._persist_progress(run)
            return
        if run.cancelled:
            return

        run.summary.rows_skipped += extraction.skipped_rows
        for row in extraction.rows:
            tracker.add_contestant(franchise.name, season.name, row.drag_name)
        self._emit(run, f"Found {len(extraction.rows)} contestants in {season.name}")

        for row in extraction.rows:
            if run.cancelled:
                return
            cpath = (franchise.name, season.name, row.drag_name)
            tracker.set_status(cpath, NodeStatus.RUNNING)
            self._emit(run, f"Processing contestant: {row.drag_name}")

            try:
                reconciled = self.reconciler.reconcile_row(row, season)
            except StorageError as exc:
                logger.error("Could not store %s: %s", row.drag_name, exc)
                run.summary.contestants_failed += 1
                tracker.set_status(cpath, NodeStatus.FAILED)
                self._emit(run)
                continue
            self._count(run, reconciled.outcome, reconciled.appearance_created)

            source_url = reconciled.contestant.metadata_source_url
            if self.config.images.scrape_during_walk and source_url:
                images = await self._images(run).scrape_images(
                    row.drag_name, source_url, season.name
                )
                if run.cancelled:
                    return
                run.summary.images_downloaded += images.downloaded

            tracker.set_status(cpath, NodeStatus.COMPLETED)
            self._emit(run)

        try:
            self.storage.update_season(season.season_id, is_scraped=True)
        except StorageError as exc:
            logger.error("Could not mark %s scraped: %s", season.name, exc)
        tracker.set_status(path, NodeStatus.COMPLETED)
        run.summary.seasons_completed += 1
        self._emit(run, f"Completed season: {season.name}")
        self._persist_progress(run)

    async def _walk_contestant(self, run: _Run) -> bool:
        contestant, path = run.contestant, run.contestant_path
        assert contestant is not None and path is not None
        assert contestant.contestant_id is not None
        tracker = run.tracker
        tracker.set_status(path, NodeStatus.RUNNING)
        self._emit(run, f"Processing contestant: {contestant.drag_name}")

        source_url = contestant.metadata_source_url
        if not source_url and self.config.images.lookup_enabled:
            source_url = await asyncio.to_thread(
                find_contestant_source_url, contestant.drag_name
            )
            if run.cancelled:
                return False
            if source_url:
                self.storage.update_contestant(
                    contestant.contestant_id, metadata_source_url=source_url
                )

        ok = False
        if not source_url:
            logger.warning("No source page known for %s", contestant.drag_name)
        else:
            season_hint = path[1] if path[1] != UNASSIGNED else None
            result = await self._images(run).scrape_images(
                contestant.drag_name, source_url, season_hint
            )
            if run.cancelled:
                return False
            run.summary.images_downloaded += result.downloaded
            for error in result.errors:
                logger.info("Image error for %s: %s", contestant.drag_name, error)
            ok = result.success

        if not ok:
            run.summary.contestants_failed += 1
        tracker.set_status(path, NodeStatus.COMPLETED if ok else NodeStatus.FAILED)
        for depth in (2, 1):
            tracker.set_status(path[:depth], tracker.status_of(path))
        self._emit(run)
        return ok

    def _images(self, run: _Run) -> ImagePipeline:
        if run.images is None:
            assert run.fetcher is not None
            run.images = ImagePipeline(
                run.fetcher, self.object_store, self.storage, self.config.images
            )
        return run.images

    # ── Bookkeeping ────────────────────────────────────────────────────────

    @staticmethod
    def _count(run: _Run, outcome: ReconcileOutcome, appearance_created: bool) -> None:
        summary = run.summary
        if outcome is ReconcileOutcome.CREATED:
            summary.contestants_created += 1
        elif outcome is ReconcileOutcome.UPDATED:
            summary.contestants_updated += 1
        else:
            summary.contestants_unchanged += 1
        if appearance_created:
            summary.appearances_created += 1

    @staticmethod
    def _summary_message(run: _Run) -> str:
        s = run.summary
        return (
            f"Scraped {s.seasons_completed} seasons ({s.seasons_failed} failed); "
            f"{s.contestants_created} new contestants, "
            f"{s.appearances_created} new appearances"
        )

    def _publish(self, snapshot: ProgressSnapshot) -> None:
        if self.sink is None:
            return
        try:
            self.sink.publish(snapshot)
        except Exception as exc:
            logger.warning("Progress sink failed: %s", exc)

    def _emit(self, run: _Run, message: str | None = None) -> None:
        if run.cancelled:
            return
        if message is not None:
            run.tracker.set_job_status(run.tracker.status, message)
        self._publish(run.tracker.snapshot())

    def _persist_progress(self, run: _Run) -> None:
        snapshot = run.tracker.snapshot()
        label = snapshot.current_contestant or snapshot.current_season
        try:
            self.storage.update_scraping_job(
                run.job_id, progress=int(snapshot.progress), current_item=label
            )
        except StorageError as exc:
            logger.error("Could not update job %s: %s", run.job_id, exc)

    def _mark_terminal(self, run: _Run, status: JobStatus, message: str) -> None:
        run.status = status
        run.completed_at = datetime.now(timezone.utc)
        if status is JobStatus.FAILED:
            run.error_message = message
        run.tracker.set_job_status(status, message)
        try:
            self.storage.update_scraping_job(
                run.job_id,
                status=status,
                progress=int(run.tracker.overall_progress),
                error_message=run.error_message,
                completed_at=run.completed_at,
            )
        except StorageError as exc:
            logger.error("Could not update job %s: %s", run.job_id, exc)

    def _finish(self, run: _Run, status: JobStatus, message: str) -> None:
        self._mark_terminal(run, status, message)
        self._state = (
            OrchestratorState.COMPLETED
            if status is JobStatus.COMPLETED
            else OrchestratorState.FAILED
        )
        logger.info("Job %s %s: %s", run.job_id, status.value, message)
        self._publish(run.tracker.snapshot())

    def _describe(self, run: _Run) -> JobDescriptor:
        return JobDescriptor(
            job_id=run.job_id,
            status=run.status,
            scope=run.scope,
            started_at=run.started_at,
            completed_at=run.completed_at,
            error_message=run.error_message,
            summary=replace(run.summary),
        )
