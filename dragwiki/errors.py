"""Exception types raised by the dragwiki scraping pipeline.

Errors at row, image and season granularity are caught close to where
they occur and turned into statuses and counters. Only the job-control
errors (``AlreadyRunningError``, ``NotRunningError``,
``UnknownTargetError``) and ``ConfigError`` reach callers.
"""

from __future__ import annotations


class DragWikiError(Exception):
    """Base class for all dragwiki errors."""


class AlreadyRunningError(DragWikiError):
    """A scrape job was started while another one is running."""


class NotRunningError(DragWikiError):
    """A stop was requested while no scrape job is running."""


class UnknownTargetError(DragWikiError, LookupError):
    """A scope refers to a franchise, season or contestant that does not exist."""


class DriverInitError(DragWikiError):
    """The browser engine could not be launched."""


class PageLoadError(DragWikiError):
    """A page could not be loaded."""


class ExtractionEmptyError(DragWikiError):
    """No table layout of a recipe produced a contestant row."""


class RowParseError(DragWikiError):
    """A single table row could not be turned into a contestant record."""


class ImageDownloadError(DragWikiError):
    """An image could not be downloaded from any of its URL variants."""


class ConfigError(DragWikiError):
    """A recipe or configuration value is malformed."""


class StorageError(DragWikiError):
    """The storage backend rejected an operation."""
