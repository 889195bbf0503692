"""Runtime configuration for dragwiki.

Configuration is an immutable value built once (usually with
``AppConfig.from_env``) and passed to the orchestrator and the image
pipeline. Use ``AppConfig.with_overrides`` to derive a modified copy.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from dragwiki.errors import ConfigError
from dragwiki.models import DB_FILENAME

logger = logging.getLogger(__name__)

DRIVER_CHOICES: tuple[str, ...] = ("auto", "real", "simulated")
OBJECT_STORE_CHOICES: tuple[str, ...] = ("local", "s3")

# Known cookie/consent dialog buttons on Wikipedia mirrors and Fandom
CONSENT_SELECTORS: tuple[str, ...] = (
    'button:has-text("I Accept")',
    'button:has-text("Accept")',
    'button:has-text("Accept All")',
    "[data-tracking-opt-in-accept]",
    ".NN0_TB_DIs498iQlfhIt",
    "#onetrust-accept-btn-handler",
    ".accept-all-btn",
)


@dataclass(frozen=True)
class ScrapingConfig:
    """Browser and page-loading settings.

    Attributes:
        driver: "auto" probes the browser and falls back to simulation,
            "real" requires the browser, "simulated" never launches one.
        headless: Run the browser without a window.
        timeout_ms: Navigation timeout per attempt.
        wait_until: Playwright load state to wait for.
        retry_attempts: Page-load attempts before a season fails.
        request_delay_s: Polite delay between season pages.
        simulated_delay_s: Artificial delay of the simulated driver.
        consent_selectors: Buttons tried when dismissing consent dialogs.
    """

    driver: str = "auto"
    headless: bool = True
    timeout_ms: int = 60_000
    wait_until: str = "domcontentloaded"
    retry_attempts: int = 3
    request_delay_s: float = 2.0
    simulated_delay_s: float = 0.8
    consent_selectors: tuple[str, ...] = CONSENT_SELECTORS


@dataclass(frozen=True)
class ImageConfig:
    """Image pipeline settings.

    Attributes:
        enabled: Global image-scraping switch.
        download_timeout_s: Timeout per image download.
        max_file_size: Largest accepted image in bytes.
        allowed_formats: Accepted file extensions.
        min_dimension: Minimum width/height for the loose fallback strategy.
        scrape_during_walk: Run the pipeline for every contestant of a season.
        lookup_enabled: Search the web for missing contestant source pages.
    """

    enabled: bool = True
    download_timeout_s: float = 30.0
    max_file_size: int = 10 * 1024 * 1024
    allowed_formats: tuple[str, ...] = ("jpg", "jpeg", "png", "webp")
    min_dimension: int = 100
    scrape_during_walk: bool = False
    lookup_enabled: bool = True


@dataclass(frozen=True)
class StorageConfig:
    """Persistence settings.

    Attributes:
        db_path: SQLite database file.
        object_store: "local" or "s3".
        local_root: Directory used by the local object store.
        public_base_url: URL prefix for locally stored objects.
        s3_bucket: Bucket name for the S3 object store.
        s3_region: AWS region of the bucket.
    """

    db_path: str = DB_FILENAME
    object_store: str = "local"
    local_root: str = "images"
    public_base_url: str = "/images"
    s3_bucket: str = ""
    s3_region: str = "us-east-1"


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration value."""

    scraping: ScrapingConfig = field(default_factory=ScrapingConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def __post_init__(self) -> None:
        if self.scraping.driver not in DRIVER_CHOICES:
            raise ConfigError(
                f"driver must be one of {DRIVER_CHOICES}, got {self.scraping.driver!r}"
            )
        if self.storage.object_store not in OBJECT_STORE_CHOICES:
            raise ConfigError(
                f"object_store must be one of {OBJECT_STORE_CHOICES}, "
                f"got {self.storage.object_store!r}"
            )
        if self.storage.object_store == "s3" and not self.storage.s3_bucket:
            raise ConfigError("object_store 's3' requires S3_BUCKET_NAME")
        if self.scraping.retry_attempts < 1:
            raise ConfigError("retry_attempts must be at least 1")

    @property
    def image_scraping_enabled(self) -> bool:
        return self.images.enabled

    @property
    def s3_enabled(self) -> bool:
        return self.storage.object_store == "s3"

    def with_overrides(
        self,
        scraping: Mapping[str, object] | None = None,
        images: Mapping[str, object] | None = None,
        storage: Mapping[str, object] | None = None,
    ) -> AppConfig:
        """Return a copy with the given section fields replaced.

        Args:
            scraping: Field overrides for ``ScrapingConfig``.
            images: Field overrides for ``ImageConfig``.
            storage: Field overrides for ``StorageConfig``.

        Returns:
            A new, validated AppConfig.

        Raises:
            ConfigError: If a field name is unknown or a value is invalid.
        """
        try:
            updated = AppConfig(
                scraping=dataclasses.replace(self.scraping, **(scraping or {})),
                images=dataclasses.replace(self.images, **(images or {})),
                storage=dataclasses.replace(self.storage, **(storage or {})),
            )
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        logger.debug("Configuration updated: %s", updated)
        return updated

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build a configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            The resulting AppConfig.
        """
        env = os.environ if environ is None else environ

        scraping = ScrapingConfig(
            driver=env.get("DRAGWIKI_DRIVER", "auto"),
            headless=_env_bool(env, "SCRAPING_HEADLESS", True),
            timeout_ms=_env_int(env, "DRAGWIKI_TIMEOUT_MS", 60_000),
            retry_attempts=_env_int(env, "DRAGWIKI_RETRY_ATTEMPTS", 3),
            request_delay_s=_env_float(env, "DRAGWIKI_REQUEST_DELAY_S", 2.0),
            simulated_delay_s=_env_float(env, "DRAGWIKI_SIMULATED_DELAY_S", 0.8),
        )
        images = ImageConfig(
            enabled=_env_bool(env, "IMAGE_SCRAPING_ENABLED", True),
            scrape_during_walk=_env_bool(env, "DRAGWIKI_IMAGES_DURING_WALK", False),
            lookup_enabled=_env_bool(env, "DRAGWIKI_SOURCE_LOOKUP", True),
        )
        bucket = env.get("S3_BUCKET_NAME", "")
        storage = StorageConfig(
            db_path=env.get("DRAGWIKI_DB", DB_FILENAME),
            object_store="s3" if bucket else "local",
            local_root=env.get("DRAGWIKI_IMAGE_DIR", "images"),
            s3_bucket=bucket,
            s3_region=env.get("AWS_REGION", "us-east-1"),
        )
        return cls(scraping=scraping, images=images, storage=storage)


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
