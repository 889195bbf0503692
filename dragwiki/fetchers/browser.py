"""Playwright-backed page fetcher.

Pages are loaded with a "domcontentloaded" wait because Fandom and other
ad-heavy mirrors never reach network idle. Consent dialogs are dismissed
on a best-effort basis before the page source is read.
"""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from dragwiki.config import ScrapingConfig
from dragwiki.errors import DriverInitError, PageLoadError
from dragwiki.fetchers.base import DriverKind, PageFetcher, PageHandle
from dragwiki.http import HEADERS

logger = logging.getLogger(__name__)

LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-features=VizDisplayCompositor",
]

RETRY_BACKOFF_S: float = 2.0
SELECTOR_WAIT_MS: int = 5_000
CONSENT_CLICK_MS: int = 3_000


class PlaywrightFetcher(PageFetcher):
    """Fetches pages with a headless Chromium instance."""

    kind = DriverKind.REAL

    def __init__(self, config: ScrapingConfig) -> None:
        super().__init__(config)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def start(self) -> None:
        """Launch Chromium.

        Raises:
            DriverInitError: If Playwright or the browser binary is missing.
        """
        if self._context is not None:
            return
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                user_agent=HEADERS["User-Agent"],
            )
        except (PlaywrightError, OSError) as exc:
            await self.shutdown()
            raise DriverInitError(f"Failed to launch browser: {exc}") from exc
        logger.info("Launched Chromium (headless=%s)", self.config.headless)

    async def open(
        self,
        url: str,
        *,
        wait_until: str | None = None,
        timeout_ms: int | None = None,
    ) -> PageHandle:
        if self._context is None:
            raise PageLoadError(f"{url}: browser is not running")

        try:
            page = await self._context.new_page()
        except PlaywrightError as exc:
            raise PageLoadError(f"{url}: {exc}") from exc
        attempts = self.config.retry_attempts
        response = None
        for attempt in range(1, attempts + 1):
            try:
                response = await page.goto(
                    url,
                    wait_until=wait_until or self.config.wait_until,
                    timeout=timeout_ms or self.config.timeout_ms,
                )
                break
            except PlaywrightError as exc:
                logger.warning(
                    "Load attempt %d/%d for %s failed: %s", attempt, attempts, url, exc
                )
                if attempt == attempts:
                    await page.close()
                    raise PageLoadError(f"{url}: {exc}") from exc
                await asyncio.sleep(RETRY_BACKOFF_S * attempt)

        if response is not None and response.status >= 400:
            await page.close()
            raise PageLoadError(f"{url}: HTTP {response.status}")

        handle = PageHandle(url=url, page=page)
        await self.dismiss_consent(handle)
        return handle

    async def dismiss_consent(self, handle: PageHandle) -> bool:
        page = handle.page
        for selector in self.config.consent_selectors:
            try:
                button = page.locator(selector).first
                if await button.count() and await button.is_visible():
                    await button.click(timeout=CONSENT_CLICK_MS)
                    await page.wait_for_timeout(500)
                    logger.debug("Dismissed consent dialog via %s", selector)
                    return True
            except PlaywrightError as exc:
                logger.debug("Consent selector %s failed: %s", selector, exc)
        return False

    async def page_source(self, handle: PageHandle, wait_for: str | None = None) -> str:
        page = handle.page
        if wait_for:
            try:
                await page.wait_for_selector(wait_for, timeout=SELECTOR_WAIT_MS)
            except PlaywrightError:
                logger.debug("Selector %s not found on %s", wait_for, handle.url)
        try:
            handle.html = await page.content()
        except PlaywrightError as exc:
            raise PageLoadError(f"{handle.url}: {exc}") from exc
        return handle.html

    async def close(self, handle: PageHandle) -> None:
        if handle.page is None:
            return
        try:
            await handle.page.close()
        except PlaywrightError as exc:
            logger.debug("Closing %s failed: %s", handle.url, exc)
        handle.page = None

    async def shutdown(self) -> None:
        for resource in (self._context, self._browser):
            if resource is None:
                continue
            try:
                await resource.close()
            except PlaywrightError as exc:
                logger.debug("Browser shutdown error: %s", exc)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as exc:
                logger.debug("Playwright stop error: %s", exc)
        self._context = None
        self._browser = None
        self._playwright = None
