#!/usr/bin/env python3
"""Detect browser downloads landing in a directory."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from errors import DownloadTimeout, PreconditionFailed
from run_config import PARTIAL_DOWNLOAD_SUFFIXES

DirectorySnapshot = frozenset[str]


def list_candidate_files(directory: Path) -> list[Path]:
    if not directory.exists():
        return []
    return [p for p in directory.iterdir() if p.is_file()]


def ensure_empty_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PreconditionFailed(f"Could not use {directory} as target directory: {exc}") from exc
    entries = list(directory.iterdir())
    if entries:
        raise PreconditionFailed(
            f"Target directory must be empty. Directory {directory} contains {len(entries)} entries - aborting"
        )


class DownloadWatcher:
    """Polls a directory until a new, fully written file shows up."""

    def __init__(
        self,
        directory: Path,
        timeout_sec: float,
        poll_interval_sec: float,
        partial_suffixes: Iterable[str] = PARTIAL_DOWNLOAD_SUFFIXES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.directory = directory
        self.timeout_sec = timeout_sec
        self.poll_interval_sec = poll_interval_sec
        self.partial_suffixes = tuple(s.lower() for s in partial_suffixes)
        self.sleep = sleep

    def snapshot(self) -> DirectorySnapshot:
        return frozenset(p.name for p in list_candidate_files(self.directory))

    def is_partial(self, name: str) -> bool:
        return name.lower().endswith(self.partial_suffixes)

    def await_completion(self, baseline: Optional[DirectorySnapshot] = None) -> str:
        """Return the name of the first completed file missing from ``baseline``.

        Without a baseline the directory is snapshotted on entry. Raises
        DownloadTimeout once ``timeout_sec`` has elapsed without a match.
        """
        before = self.snapshot() if baseline is None else baseline
        deadline = time.monotonic() + self.timeout_sec
        while True:
            new_files = self.snapshot() - before
            completed = next((name for name in new_files if not self.is_partial(name)), None)
            if completed is not None:
                return completed
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DownloadTimeout(self.directory, self.timeout_sec)
            self.sleep(min(self.poll_interval_sec, remaining))
