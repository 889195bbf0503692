"""Shared HTTP and search utilities for dragwiki.

Page rendering goes through the browser driver; plain HTTP is used for
image downloads and for the DuckDuckGo source-page lookup.
"""

from __future__ import annotations

import logging
import time

import requests
from ddgs import DDGS
from ddgs.exceptions import DDGSException, RatelimitException

from dragwiki.errors import ImageDownloadError

logger = logging.getLogger(__name__)

HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36 "
        "DragWikiBot/1.0 (fan archive)"
    ),
}

DDG_DELAY_S: float = 3.0
DDG_BACKOFF_S: float = 30.0


def fetch_bytes(
    url: str,
    timeout_s: float = 30.0,
    max_size: int | None = None,
) -> tuple[bytes, str]:
    """Download *url* and return its body and content type.

    Args:
        url: Fully-qualified URL.
        timeout_s: Request timeout.
        max_size: Reject bodies larger than this many bytes.

    Returns:
        (body, content_type). The content type defaults to
        "application/octet-stream" when the server sends none.

    Raises:
        ImageDownloadError: On network errors, non-2xx responses, or
            oversized bodies.
    """
    try:
        resp = requests.get(url, headers=HEADERS, timeout=timeout_s)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise ImageDownloadError(f"{url}: {exc}") from exc

    body = resp.content
    if max_size is not None and len(body) > max_size:
        raise ImageDownloadError(
            f"{url}: {len(body)} bytes exceeds limit of {max_size}"
        )
    content_type = resp.headers.get("Content-Type", "application/octet-stream")
    return body, content_type.split(";", 1)[0].strip()


def ddg_search(
    query: str,
    max_results: int = 5,
    max_retries: int = 3,
) -> list[dict[str, str]]:
    """Search DuckDuckGo, backing off exponentially while rate limited.

    Args:
        query: Search query, e.g. ``site:rupaulsdragrace.fandom.com "Katya"``.
        max_results: Upper bound on returned hits.
        max_retries: Rate-limit retries before giving up.

    Returns:
        Result dicts with 'title', 'href' and 'body' keys; empty when the
        search keeps failing.
    """
    attempt = 0
    while True:
        time.sleep(DDG_DELAY_S)
        try:
            with DDGS() as client:
                return list(client.text(query, max_results=max_results))
        except DDGSException as exc:
            limited = isinstance(exc, RatelimitException) or "429" in str(exc)
            if not limited or attempt >= max_retries:
                logger.error("Search for %r gave up after %d tries: %s", query, attempt + 1, exc)
                return []
            pause = DDG_BACKOFF_S * 2**attempt
            logger.info("Search rate limited, sleeping %.0fs before retry %d", pause, attempt + 1)
            time.sleep(pause)
            attempt += 1
