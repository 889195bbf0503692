"""Page fetchers and driver selection.

``select_fetcher`` probes the browser once per job and returns the chosen
implementation tagged with its kind, so callers never swap drivers
mid-run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dragwiki.config import ScrapingConfig
from dragwiki.errors import DriverInitError
from dragwiki.fetchers.base import DownloadedImage, DriverKind, PageFetcher, PageHandle
from dragwiki.fetchers.browser import PlaywrightFetcher
from dragwiki.fetchers.simulated import SimulatedFetcher

logger = logging.getLogger(__name__)

__all__ = [
    "DownloadedImage",
    "DriverKind",
    "FetcherSelection",
    "PageFetcher",
    "PageHandle",
    "PlaywrightFetcher",
    "SimulatedFetcher",
    "select_fetcher",
]


@dataclass(frozen=True)
class FetcherSelection:
    kind: DriverKind
    fetcher: PageFetcher


async def select_fetcher(config: ScrapingConfig) -> FetcherSelection:
    """Start and return the page fetcher for a job.

    Args:
        config: Scraping settings; ``config.driver`` is "auto", "real" or
            "simulated".

    Returns:
        The started fetcher and its kind.

    Raises:
        DriverInitError: If ``driver`` is "real" and the browser cannot start.
    """
    if config.driver != "simulated":
        real = PlaywrightFetcher(config)
        try:
            await real.start()
        except DriverInitError as exc:
            if config.driver == "real":
                raise
            logger.warning("Browser unavailable, using simulated driver: %s", exc)
        else:
            return FetcherSelection(DriverKind.REAL, real)

    simulated = SimulatedFetcher(config)
    await simulated.start()
    return FetcherSelection(DriverKind.SIMULATED, simulated)
