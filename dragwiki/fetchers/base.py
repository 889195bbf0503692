"""Abstract base class for page fetchers (browser drivers)."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bs4 import BeautifulSoup

from dragwiki.config import ScrapingConfig
from dragwiki.http import fetch_bytes
from dragwiki.recipes.types import ExtractionRecipe
from dragwiki.wiki_parsing import ExtractionResult, extract_contestant_rows

logger = logging.getLogger(__name__)


class DriverKind(str, Enum):
    """Which page-fetcher implementation is serving a job."""

    REAL = "real"
    SIMULATED = "simulated"


@dataclass
class PageHandle:
    """An open page.

    Attributes:
        url: URL the page was opened with.
        html: Last known page source.
        page: Driver-specific page object, if any.
    """

    url: str
    html: str = ""
    page: Any = None


@dataclass(frozen=True)
class DownloadedImage:
    url: str
    content: bytes
    content_type: str


class PageFetcher(ABC):
    """Loads pages and extracts contestant tables from them.

    Subclasses implement ``open``; the shared ``extract_table`` parses the
    page source with BeautifulSoup and applies the recipe's layouts.
    """

    kind: DriverKind

    def __init__(self, config: ScrapingConfig) -> None:
        self.config = config

    async def start(self) -> None:
        """Acquire driver resources.

        Raises:
            DriverInitError: If the driver cannot be started.
        """

    @abstractmethod
    async def open(
        self,
        url: str,
        *,
        wait_until: str | None = None,
        timeout_ms: int | None = None,
    ) -> PageHandle:
        """Load *url* and return a handle to the page.

        Args:
            url: Page URL.
            wait_until: Load state to wait for (driver default if None).
            timeout_ms: Navigation timeout (driver default if None).

        Returns:
            An open PageHandle; release it with ``close``.

        Raises:
            PageLoadError: If the page cannot be loaded.
        """

    async def page_source(self, handle: PageHandle, wait_for: str | None = None) -> str:
        return handle.html

    async def page_soup(
        self,
        handle: PageHandle,
        wait_for: str | None = None,
    ) -> BeautifulSoup:
        return BeautifulSoup(await self.page_source(handle, wait_for), "lxml")

    async def extract_table(
        self,
        handle: PageHandle,
        recipe: ExtractionRecipe,
    ) -> ExtractionResult:
        """Extract contestant rows from an open page.

        Raises:
            ExtractionEmptyError: If no layout of *recipe* matched any row.
        """
        soup = await self.page_soup(handle, recipe.wait_for_selector)
        return extract_contestant_rows(soup, recipe, handle.url)

    async def dismiss_consent(self, handle: PageHandle) -> bool:
        """Try to close a cookie-consent dialog; True if one was dismissed."""
        return False

    async def download(
        self,
        url: str,
        timeout_s: float,
        max_size: int | None = None,
    ) -> DownloadedImage:
        """Download a binary resource such as an image.

        Raises:
            ImageDownloadError: If the download fails.
        """
        content, content_type = await asyncio.to_thread(
            fetch_bytes, url, timeout_s, max_size
        )
        return DownloadedImage(url=url, content=content, content_type=content_type)

    async def close(self, handle: PageHandle) -> None:
        """Release an open page."""

    async def shutdown(self) -> None:
        """Release all driver resources. Safe to call more than once."""
