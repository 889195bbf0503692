"""Contestant image discovery, download and content-addressed storage.

Images are keyed by the sha256 of their bytes, so the same picture reached
through two URLs (a thumbnail and its original, say) is stored once and
recorded twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from dragwiki.config import ImageConfig
from dragwiki.errors import ImageDownloadError, PageLoadError, StorageError
from dragwiki.fetchers.base import DownloadedImage, PageFetcher
from dragwiki.object_store import ObjectStore
from dragwiki.storage import Storage

logger = logging.getLogger(__name__)

# Tried in order; matches from every selector are accumulated.
DISCOVERY_SELECTORS: tuple[str, ...] = (
    ".wikia-gallery-item img",
    ".gallery img",
    ".mw-gallery-traditional img",
    ".portable-infobox img",
    'img[src*="look"]',
    'img[src*="runway"]',
    'img[src*="outfit"]',
    'img[alt*="look"]',
    'img[alt*="runway"]',
    'img[alt*="outfit"]',
)

UI_CHROME_PATTERNS: tuple[str, ...] = (
    "logo",
    "icon",
    "sprite",
    "avatar",
    "badge",
    "button",
    "banner",
    "favicon",
    "placeholder",
    "/site/",
)

_CONTENT_TYPE_EXT: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_FANDOM_RESIZE_RE = re.compile(
    r"/revision/latest/(?:scale-to-width-down|scale-to-height-down|scale-to-width"
    r"|smart|zoom-crop|top-crop|window-crop|fixed-aspect-ratio)(?:/[^?]*)?"
)
_WIKIMEDIA_THUMB_RE = re.compile(r"^(https?://upload\.wikimedia\.org/.+?)/thumb/(.+)/[^/]+$")


@dataclass(frozen=True)
class ImageCandidate:
    url: str
    alt: str = ""
    title: str = ""


@dataclass(frozen=True)
class UploadedImage:
    """One stored image.

    Attributes:
        original_url: URL the image was discovered under.
        key: Object store key (content-addressed).
        url: Public URL of the stored object.
        image_name: Human-friendly name derived from alt or title text.
    """

    original_url: str
    key: str
    url: str
    image_name: str


@dataclass
class ImageScrapeResult:
    success: bool = False
    downloaded: int = 0
    uploaded: list[UploadedImage] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    note: str | None = None


# ── Discovery ──────────────────────────────────────────────────────────────


def _image_src(img: Tag, base_url: str) -> str | None:
    # Lazy-loaded images keep the real URL in data-src.
    src = img.get("data-src") or img.get("src")
    if not src:
        return None
    src = str(src).strip()
    if src.startswith("data:"):
        return None
    return urljoin(base_url, src)


def has_allowed_format(url: str, formats: tuple[str, ...]) -> bool:
    pattern = r"\.(?:" + "|".join(re.escape(f) for f in formats) + r")(?:$|[/?#])"
    return re.search(pattern, url.lower()) is not None


def _dimension(img: Tag, attr: str) -> int:
    match = re.match(r"\s*(\d+)", str(img.get(attr, "")))
    return int(match.group(1)) if match else 0


def _is_chrome(url: str) -> bool:
    lowered = url.lower()
    return any(pattern in lowered for pattern in UI_CHROME_PATTERNS)


def discover_images(
    soup: BeautifulSoup,
    base_url: str,
    config: ImageConfig,
) -> list[ImageCandidate]:
    """Find candidate images on a contestant page.

    Args:
        soup: Parsed page.
        base_url: Page URL, for resolving relative image sources.
        config: Image settings (formats, minimum size).

    Returns:
        Candidates in discovery order, de-duplicated by URL. When no
        selector matches, every sufficiently large image that is not site
        chrome is returned instead.
    """
    found: list[ImageCandidate] = []
    seen: set[str] = set()

    def _add(img: Tag) -> None:
        url = _image_src(img, base_url)
        if url is None or url in seen:
            return
        if not has_allowed_format(url, config.allowed_formats):
            return
        seen.add(url)
        found.append(
            ImageCandidate(
                url=url,
                alt=str(img.get("alt", "")),
                title=str(img.get("title", "")),
            )
        )

    for selector in DISCOVERY_SELECTORS:
        for img in soup.select(selector):
            _add(img)

    if not found:
        logger.debug("No gallery images on %s, trying loose strategy", base_url)
        for img in soup.find_all("img"):
            width, height = _dimension(img, "width"), _dimension(img, "height")
            if min(width, height) < config.min_dimension:
                continue
            url = _image_src(img, base_url)
            if url is not None and not _is_chrome(url):
                _add(img)
    return found


def filter_by_season(
    candidates: list[ImageCandidate],
    season_hint: str | None,
) -> list[ImageCandidate]:
    """Keep images whose alt text or URL mention the season number.

    The unfiltered list is returned when the hint has no number or when no
    image mentions it.
    """
    if not season_hint:
        return candidates
    number = re.search(r"\d+", season_hint)
    if number is None:
        return candidates
    n = number.group(0)
    pattern = re.compile(rf"season[\s_-]*{n}(?!\d)|(?<![a-z0-9])s{n}(?!\d)")
    matched = [
        c for c in candidates if pattern.search(c.alt.lower()) or pattern.search(c.url.lower())
    ]
    return matched or candidates


def url_variants(url: str) -> list[str]:
    """Return *url* followed by versions with resize/crop segments removed."""
    variants = [url]
    if "/revision/" in url:
        variants.append(_FANDOM_RESIZE_RE.sub("/revision/latest", url))
        variants.append(url.split("/revision/", 1)[0])
    thumb = _WIKIMEDIA_THUMB_RE.match(url)
    if thumb:
        variants.append(f"{thumb.group(1)}/{thumb.group(2)}")
    return list(dict.fromkeys(variants))


# ── Naming ─────────────────────────────────────────────────────────────────


def contestant_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "unknown"


# Leading bytes of each accepted format. WebP is checked separately.
_MAGIC_EXT: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "jpg"),
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
)


def content_extension(content: bytes, content_type: str) -> str:
    """File extension for downloaded bytes.

    The extension is taken from the bytes, then the content type, and
    never from the URL, so identical bytes always get the same key.
    """
    for magic, extension in _MAGIC_EXT:
        if content.startswith(magic):
            return extension
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "webp"
    return _CONTENT_TYPE_EXT.get(content_type.split(";", 1)[0].strip().lower(), "jpg")


def image_name(candidate: ImageCandidate, index: int, extension: str) -> str:
    label = candidate.alt or candidate.title
    label = re.sub(r"[^a-zA-Z0-9\s-]", "", label)
    label = re.sub(r"\s+", "-", label.strip()).lower()[:50]
    return f"{label or f'look-{index + 1}'}.{extension}"


# ── Pipeline ───────────────────────────────────────────────────────────────


class ImagePipeline:
    """Downloads a contestant's images into an object store."""

    def __init__(
        self,
        fetcher: PageFetcher,
        object_store: ObjectStore,
        storage: Storage,
        config: ImageConfig,
    ) -> None:
        self.fetcher = fetcher
        self.object_store = object_store
        self.storage = storage
        self.config = config

    async def _download(self, url: str) -> DownloadedImage:
        last_exc: ImageDownloadError | None = None
        for variant in url_variants(url):
            try:
                image = await self.fetcher.download(
                    variant,
                    self.config.download_timeout_s,
                    self.config.max_file_size,
                )
            except ImageDownloadError as exc:
                logger.debug("Variant %s failed: %s", variant, exc)
                last_exc = exc
                continue
            if not image.content:
                last_exc = ImageDownloadError(f"{variant}: empty body")
                continue
            return image
        raise last_exc or ImageDownloadError(f"{url}: no variants to try")

    async def _store(self, key: str, image: DownloadedImage) -> str:
        if await asyncio.to_thread(self.object_store.exists, key):
            logger.debug("Object %s already stored", key)
            return self.object_store.public_url(key)
        return await asyncio.to_thread(
            self.object_store.put, key, image.content, image.content_type
        )

    async def _load_candidates(self, source_url: str) -> list[ImageCandidate]:
        handle = await self.fetcher.open(source_url)
        try:
            soup = await self.fetcher.page_soup(handle)
        finally:
            await self.fetcher.close(handle)
        return discover_images(soup, source_url, self.config)

    async def scrape_images(
        self,
        contestant_name: str,
        source_url: str,
        season_hint: str | None = None,
    ) -> ImageScrapeResult:
        """Discover, download and store images for one contestant.

        Args:
            contestant_name: Drag name; also the storage key for the result.
            source_url: Contestant page to scan.
            season_hint: Season name used to prefer season-specific images.

        Returns:
            The scrape result. ``success`` is True when at least one image
            was downloaded, or when image scraping is disabled.
        """
        result = ImageScrapeResult()
        if not self.config.enabled:
            result.success = True
            result.note = "Image scraping is disabled"
            return result

        try:
            candidates = await self._load_candidates(source_url)
        except PageLoadError as exc:
            result.errors.append(f"Failed to load {source_url}: {exc}")
            return result

        candidates = filter_by_season(candidates, season_hint)
        if not candidates:
            result.errors.append("No images found on the page")
            return result
        logger.info("Found %d images for %s", len(candidates), contestant_name)

        slug = contestant_slug(contestant_name)
        for index, candidate in enumerate(candidates):
            try:
                image = await self._download(candidate.url)
            except ImageDownloadError as exc:
                result.errors.append(f"Failed to download {candidate.url}: {exc}")
                continue
            result.downloaded += 1

            extension = content_extension(image.content, image.content_type)
            digest = hashlib.sha256(image.content).hexdigest()
            key = f"contestants/{slug}/{digest}.{extension}"
            try:
                public_url = await self._store(key, image)
            except StorageError as exc:
                result.errors.append(f"Failed to store {candidate.url}: {exc}")
                continue
            result.uploaded.append(
                UploadedImage(
                    original_url=candidate.url,
                    key=key,
                    url=public_url,
                    image_name=image_name(candidate, index, extension),
                )
            )

        result.success = result.downloaded > 0
        if result.success:
            urls = list(dict.fromkeys(img.url for img in result.uploaded))
            try:
                self.storage.update_contestant_images(contestant_name, urls)
            except StorageError as exc:
                result.errors.append(f"Failed to record images: {exc}")
        logger.info(
            "Stored %d/%d images for %s",
            len(result.uploaded),
            len(candidates),
            contestant_name,
        )
        return result
