#!/usr/bin/env python3
"""Error types raised by the gallery downloader."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class GalleryDownloaderError(Exception):
    """Base class for every error the downloader reports to the user."""


class InvalidInput(GalleryDownloaderError):
    """Missing or malformed command line / config input."""

    def __init__(self, message: str, hints: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.hints = list(hints or [])


class PreconditionFailed(GalleryDownloaderError):
    """The destination directory is not usable for a fresh run."""


class DownloadTimeout(GalleryDownloaderError):
    def __init__(self, directory: Path, timeout_sec: float):
        super().__init__(f"Download did not complete within {timeout_sec:g}s in {directory}")
        self.directory = directory
        self.timeout_sec = timeout_sec


class CriticalError(GalleryDownloaderError):
    """Unexpected browser state that aborts the whole run."""


class ElementNotFound(GalleryDownloaderError):
    """A bounded wait for a selector ran out of time."""

    def __init__(self, selector: str, timeout_sec: float):
        super().__init__(f"Selector {selector!r} not available within {timeout_sec:g}s")
        self.selector = selector
        self.timeout_sec = timeout_sec
