"""Hierarchical progress tracking and progress sinks.

A ``ProgressTracker`` holds the franchise -> season -> contestant status
tree of one job. Aggregate percentages are recomputed bottom-up on every
status change and are never set directly. ``snapshot()`` returns an
immutable copy that sinks broadcast to observers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import orjson
from tqdm import tqdm

from dragwiki.models import JobStatus, NodeStatus, ScrapeLevel

logger = logging.getLogger(__name__)


# ── Snapshot types ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ContestantStatus:
    name: str
    status: NodeStatus


@dataclass(frozen=True)
class SeasonStatus:
    name: str
    franchise_name: str
    status: NodeStatus
    progress: float
    contestants: tuple[ContestantStatus, ...] = ()


@dataclass(frozen=True)
class FranchiseStatus:
    name: str
    status: NodeStatus
    progress: float
    seasons: tuple[SeasonStatus, ...] = ()


@dataclass(frozen=True)
class ProgressSnapshot:
    """Immutable view of a job's progress at one point in time.

    Attributes:
        job_id: Job the snapshot belongs to (None when idle).
        status: Job status.
        level: Scope level of the job.
        progress: Overall percentage, 0-100.
        message: Latest human-readable message.
        current_franchise: Franchise being processed.
        current_season: Season being processed.
        current_contestant: Contestant being processed.
        franchises: Nested status tree.
    """

    job_id: str | None
    status: JobStatus
    level: ScrapeLevel | None = None
    progress: float = 0.0
    message: str | None = None
    current_franchise: str | None = None
    current_season: str | None = None
    current_contestant: str | None = None
    franchises: tuple[FranchiseStatus, ...] = ()
    total_franchises: int = 0
    completed_franchises: int = 0
    total_seasons: int = 0
    completed_seasons: int = 0
    failed_seasons: int = 0
    total_contestants: int = 0
    completed_contestants: int = 0

    @classmethod
    def idle(cls) -> ProgressSnapshot:
        return cls(job_id=None, status=JobStatus.IDLE)

    def to_json(self) -> bytes:
        return orjson.dumps(self)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dict (enums as their string values)."""
        return orjson.loads(self.to_json())


# ── Aggregation ────────────────────────────────────────────────────────────


@dataclass
class _Node:
    name: str
    status: NodeStatus = NodeStatus.PENDING
    progress: float = 0.0
    children: dict[str, _Node] = field(default_factory=dict)


def _credit(node: _Node) -> float:
    """Share of a child counted towards its parent, 0.0-1.0.

    A child with children of its own contributes its aggregate, whatever
    status it was last given.
    """
    if node.status.is_terminal:
        return 1.0
    if node.children or node.status is NodeStatus.RUNNING:
        return node.progress / 100.0
    return 0.0


def aggregate_progress(children: Sequence[_Node]) -> float:
    """Percentage of *children* done; running children count partially.

    Completed and failed children both count as done, since the walk
    will not revisit them.
    """
    if not children:
        return 0.0
    return 100.0 * sum(_credit(c) for c in children) / len(children)


def _leaf_progress(node: _Node, explicit: float | None) -> float:
    if node.status.is_terminal:
        return 100.0
    if node.status is NodeStatus.RUNNING:
        value = explicit if explicit is not None else node.progress
        return min(max(value, 0.0), 100.0)
    return 0.0


class ProgressTracker:
    """Nested franchise -> season -> contestant progress for one job.

    Paths are tuples of names: ``(franchise,)``, ``(franchise, season)``
    or ``(franchise, season, contestant)``.
    """

    def __init__(self, job_id: str, level: ScrapeLevel) -> None:
        self.job_id = job_id
        self.level = level
        self.status = JobStatus.RUNNING
        self.message: str | None = None
        self._root = _Node(name="")
        self._current: list[str | None] = [None, None, None]

    # ── Structure ──────────────────────────────────────────────────────────

    def add_franchise(self, franchise: str) -> None:
        self._root.children.setdefault(franchise, _Node(franchise))
        self._recompute(())

    def add_season(self, franchise: str, season: str) -> None:
        self.add_franchise(franchise)
        self._root.children[franchise].children.setdefault(season, _Node(season))
        self._recompute((franchise,))

    def add_contestant(self, franchise: str, season: str, contestant: str) -> None:
        self.add_season(franchise, season)
        season_node = self._root.children[franchise].children[season]
        season_node.children.setdefault(contestant, _Node(contestant))
        self._recompute((franchise, season))

    def _node(self, path: Sequence[str]) -> _Node:
        node = self._root
        for name in path:
            try:
                node = node.children[name]
            except KeyError:
                raise KeyError(f"Unknown progress path: {tuple(path)!r}") from None
        return node

    # ── Updates ────────────────────────────────────────────────────────────

    def set_status(
        self,
        path: Sequence[str],
        status: NodeStatus,
        progress: float | None = None,
    ) -> None:
        """Set the status of the node at *path* and recompute its ancestors.

        Args:
            path: Names from franchise down to the target node.
            status: New status.
            progress: Own progress for a running node without children.

        Raises:
            KeyError: If the path does not exist.
        """
        if not path:
            raise KeyError("Empty progress path")
        node = self._node(path)
        node.status = status
        if node.children:
            node.progress = aggregate_progress(list(node.children.values()))
        else:
            node.progress = _leaf_progress(node, progress)
        self._recompute(tuple(path[:-1]))

        if status is NodeStatus.RUNNING:
            self.set_current(*path)

    def _recompute(self, path: tuple[str, ...]) -> None:
        """Refresh aggregate progress of the node at *path* and all its ancestors."""
        for depth in range(len(path), -1, -1):
            node = self._node(path[:depth])
            if node.children:
                node.progress = aggregate_progress(list(node.children.values()))

    def set_current(
        self,
        franchise: str | None = None,
        season: str | None = None,
        contestant: str | None = None,
    ) -> None:
        self._current = [franchise, season, contestant]

    def set_job_status(self, status: JobStatus, message: str | None = None) -> None:
        self.status = status
        if message is not None:
            self.message = message

    # ── Queries ────────────────────────────────────────────────────────────

    def progress_of(self, path: Sequence[str]) -> float:
        return self._node(path).progress

    def status_of(self, path: Sequence[str]) -> NodeStatus:
        return self._node(path).status

    @property
    def overall_progress(self) -> float:
        return self._root.progress

    def snapshot(self) -> ProgressSnapshot:
        """Return an immutable copy of the current state."""
        franchises: list[FranchiseStatus] = []
        counts = dict.fromkeys(
            (
                "completed_franchises",
                "total_seasons",
                "completed_seasons",
                "failed_seasons",
                "total_contestants",
                "completed_contestants",
            ),
            0,
        )
        for f_node in self._root.children.values():
            seasons: list[SeasonStatus] = []
            for s_node in f_node.children.values():
                contestants = tuple(
                    ContestantStatus(name=c.name, status=c.status)
                    for c in s_node.children.values()
                )
                counts["total_contestants"] += len(contestants)
                counts["completed_contestants"] += sum(
                    1 for c in contestants if c.status is NodeStatus.COMPLETED
                )
                counts["total_seasons"] += 1
                if s_node.status is NodeStatus.COMPLETED:
                    counts["completed_seasons"] += 1
                elif s_node.status is NodeStatus.FAILED:
                    counts["failed_seasons"] += 1
                seasons.append(
                    SeasonStatus(
                        name=s_node.name,
                        franchise_name=f_node.name,
                        status=s_node.status,
                        progress=round(s_node.progress, 2),
                        contestants=contestants,
                    )
                )
            if f_node.status is NodeStatus.COMPLETED:
                counts["completed_franchises"] += 1
            franchises.append(
                FranchiseStatus(
                    name=f_node.name,
                    status=f_node.status,
                    progress=round(f_node.progress, 2),
                    seasons=tuple(seasons),
                )
            )

        franchise, season, contestant = self._current
        return ProgressSnapshot(
            job_id=self.job_id,
            status=self.status,
            level=self.level,
            progress=round(self._root.progress, 2),
            message=self.message,
            current_franchise=franchise,
            current_season=season,
            current_contestant=contestant,
            franchises=tuple(franchises),
            total_franchises=len(franchises),
            **counts,
        )


# ── Sinks ──────────────────────────────────────────────────────────────────


class ProgressSink(Protocol):
    """Receives snapshots; delivery is best-effort and never blocks."""

    def publish(self, snapshot: ProgressSnapshot) -> None: ...


class LoggingProgressSink:
    """Writes each snapshot's headline to the log."""

    def publish(self, snapshot: ProgressSnapshot) -> None:
        logger.info(
            "[%s] %s %.0f%% %s",
            snapshot.job_id,
            snapshot.status.value,
            snapshot.progress,
            snapshot.message or snapshot.current_contestant or snapshot.current_season or "",
        )


class BroadcastProgressSink:
    """Fans snapshots out to in-process subscribers.

    Each subscriber gets a bounded ``asyncio.Queue``. A full queue drops the
    snapshot for that subscriber only. Late subscribers receive future
    snapshots only.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[ProgressSnapshot]] = []

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue[ProgressSnapshot]:
        queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ProgressSnapshot]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: ProgressSnapshot) -> None:
        for queue in self._subscribers:
            try:
                queue.put_nowait(snapshot)
            except asyncio.QueueFull:
                logger.debug("Dropping snapshot for a slow subscriber")


class CompositeProgressSink:
    """Publishes to several sinks in order."""

    def __init__(self, *sinks: ProgressSink) -> None:
        self.sinks = sinks

    def publish(self, snapshot: ProgressSnapshot) -> None:
        for sink in self.sinks:
            sink.publish(snapshot)


class TqdmProgressSink:
    """Renders overall progress as a tqdm bar (CLI use)."""

    def __init__(self, desc: str = "Scraping") -> None:
        self._bar = tqdm(total=100, desc=desc, unit="%")

    def publish(self, snapshot: ProgressSnapshot) -> None:
        self._bar.n = int(snapshot.progress)
        label = snapshot.current_contestant or snapshot.current_season
        if label:
            self._bar.set_postfix_str(label, refresh=False)
        self._bar.refresh()

    def close(self) -> None:
        self._bar.close()
