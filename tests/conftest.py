"""Shared fixtures: in-memory storage and fake collaborators."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from dragwiki.config import AppConfig, ImageConfig, ScrapingConfig, StorageConfig
from dragwiki.errors import ImageDownloadError, PageLoadError
from dragwiki.fetchers.base import DownloadedImage, DriverKind, PageFetcher, PageHandle
from dragwiki.progress import ProgressSnapshot
from dragwiki.storage import SqliteStorage


class StaticPageFetcher(PageFetcher):
    """Serves fixed HTML per URL and fixed bytes per image URL."""

    kind = DriverKind.REAL

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        images: dict[str, bytes] | None = None,
    ) -> None:
        super().__init__(ScrapingConfig(driver="real", request_delay_s=0.0))
        self.pages = pages or {}
        self.images = images or {}
        self.opened: list[str] = []
        self.downloads: list[str] = []
        self.closed = 0
        self.shutdowns = 0

    async def open(
        self,
        url: str,
        *,
        wait_until: str | None = None,
        timeout_ms: int | None = None,
    ) -> PageHandle:
        self.opened.append(url)
        if url not in self.pages:
            raise PageLoadError(f"{url}: HTTP 404")
        return PageHandle(url=url, html=self.pages[url])

    async def download(
        self,
        url: str,
        timeout_s: float,
        max_size: int | None = None,
    ) -> DownloadedImage:
        self.downloads.append(url)
        if url not in self.images:
            raise ImageDownloadError(f"{url}: HTTP 404")
        return DownloadedImage(url=url, content=self.images[url], content_type="image/jpeg")

    async def close(self, handle: PageHandle) -> None:
        self.closed += 1

    async def shutdown(self) -> None:
        self.shutdowns += 1


class MemoryObjectStore:
    """Dict-backed object store that counts uploads."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.puts = 0

    def exists(self, key: str) -> bool:
        return key in self.objects

    def put(self, key: str, data: bytes, content_type: str) -> str:
        self.puts += 1
        self.objects[key] = data
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"https://cdn.example.org/{key}"


class RecordingSink:
    def __init__(self) -> None:
        self.snapshots: list[ProgressSnapshot] = []

    def publish(self, snapshot: ProgressSnapshot) -> None:
        self.snapshots.append(snapshot)


@pytest.fixture()
def storage() -> Iterator[SqliteStorage]:
    """In-memory SQLite storage with schema."""
    store = SqliteStorage.open(":memory:")
    yield store
    store.close()


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    """Fast configuration: no delays, no web lookups, images under tmp_path."""
    return AppConfig(
        scraping=ScrapingConfig(
            driver="simulated",
            request_delay_s=0.0,
            simulated_delay_s=0.0,
            retry_attempts=1,
        ),
        images=ImageConfig(lookup_enabled=False),
        storage=StorageConfig(db_path=":memory:", local_root=str(tmp_path / "images")),
    )


@pytest.fixture()
def object_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def make_fetcher() -> type[StaticPageFetcher]:
    """The StaticPageFetcher class, for tests that build their own pages."""
    return StaticPageFetcher
