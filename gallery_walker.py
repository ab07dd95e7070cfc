#!/usr/bin/env python3
"""Gallery traversal: download the visible photo, advance, repeat."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from download_watcher import DownloadWatcher
from errors import CriticalError, ElementNotFound
from reporting import Reporter
from run_config import RunConfiguration


class WalkerState(Enum):
    START = "start"
    AWAITING_IMAGE_LINK = "awaiting_image_link"
    DOWNLOADING = "downloading"
    AWAITING_ADVANCE = "awaiting_advance"
    DONE = "done"


class TraversalOutcome(Enum):
    ADVANCED = "advanced"
    END_OF_GALLERY = "end_of_gallery"


@dataclass
class WalkResult:
    photo_count: int
    files: list[str] = field(default_factory=list)
    advances: int = 0


class GalleryWalker:
    """Drives one gallery from the first photo to the last.

    ``browser`` needs ``goto(url)``, ``click(selector, timeout_sec)``,
    ``wait_for_visible(selector, timeout_sec) -> bool`` and ``pause(seconds)``.
    Downloads are strictly serialized: the next click only happens after the
    watcher confirmed the previous file.
    """

    def __init__(
        self,
        browser: Any,
        watcher: DownloadWatcher,
        config: RunConfiguration,
        reporter: Optional[Reporter] = None,
    ):
        self.browser = browser
        self.watcher = watcher
        self.config = config
        self.reporter = reporter or Reporter()
        self.state = WalkerState.START
        self.transitions: list[WalkerState] = [WalkerState.START]
        self.photo_count = 0
        self.advances = 0
        self.files: list[str] = []

    def _enter(self, state: WalkerState) -> None:
        self.state = state
        self.transitions.append(state)

    def run(self) -> WalkResult:
        self.browser.goto(self.config.gallery_url)
        self._enter(WalkerState.AWAITING_IMAGE_LINK)
        while True:
            self.download_current()
            self._enter(WalkerState.AWAITING_ADVANCE)
            if self.attempt_advance() is TraversalOutcome.END_OF_GALLERY:
                break
            self.advances += 1
            self._enter(WalkerState.AWAITING_IMAGE_LINK)
        self._enter(WalkerState.DONE)
        self.reporter.finished(self.photo_count)
        return WalkResult(photo_count=self.photo_count, files=list(self.files), advances=self.advances)

    def download_current(self) -> str:
        selector = self.config.image_link_selector
        self.reporter.download_started(self.photo_count + 1)
        baseline = self.watcher.snapshot()
        try:
            self.browser.click(selector, self.config.element_timeout_sec)
        except ElementNotFound as exc:
            raise CriticalError(f"Image link {selector!r} never became clickable") from exc
        self._enter(WalkerState.DOWNLOADING)

        filename = self.watcher.await_completion(baseline=baseline)
        self.photo_count += 1
        self.files.append(filename)
        self.reporter.download_succeeded(filename)
        return filename

    def attempt_advance(self) -> TraversalOutcome:
        """Reveal the next photo, or report that the gallery has ended.

        Each step gets the full element timeout. Only a selector that does
        not show up in time means the end; any other browser error
        propagates.
        """
        timeout_sec = self.config.element_timeout_sec
        next_selector = self.config.next_button_selector
        if not self.browser.wait_for_visible(next_selector, timeout_sec):
            return self._end_of_gallery()

        self.reporter.advancing(self.photo_count + 1)
        try:
            self.browser.click(next_selector, timeout_sec)
        except ElementNotFound:
            return self._end_of_gallery()

        if not self.browser.wait_for_visible(self.config.image_link_selector, timeout_sec):
            return self._end_of_gallery()

        self.browser.pause(self.config.settle_delay_sec)
        return TraversalOutcome.ADVANCED

    def _end_of_gallery(self) -> TraversalOutcome:
        self.reporter.end_of_gallery()
        return TraversalOutcome.END_OF_GALLERY
