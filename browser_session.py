#!/usr/bin/env python3
"""Playwright-backed browser session used to drive a gallery page."""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import Any, Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from errors import ElementNotFound
from run_config import RunConfiguration

IN_PROGRESS_SUFFIX = ".crdownload"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124 Safari/537.36"
)


def to_ms(seconds: float) -> int:
    # Playwright treats a timeout of 0 as "wait forever".
    return max(1, int(seconds * 1000))


def unique_path(path: Path) -> Path:
    if not path.exists():
        return path
    stem = path.stem
    suffix = path.suffix
    for i in range(1, 10000):
        candidate = path.with_name(f"{stem} ({i}){suffix}")
        if not candidate.exists():
            return candidate
    raise RuntimeError(f"Could not create unique path for {path}")


class BrowserSession:
    def __init__(self, page: Any):
        self.page = page
        self.download_dir: Optional[Path] = None
        self.saved_downloads: list[str] = []
        self.download_errors: list[str] = []

    def goto(self, url: str) -> None:
        self.page.goto(url, wait_until="domcontentloaded", timeout=90000)

    def click(self, selector: str, timeout_sec: float) -> None:
        try:
            self.page.locator(selector).first.click(timeout=to_ms(timeout_sec))
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector, timeout_sec) from exc

    def wait_for_visible(self, selector: str, timeout_sec: float) -> bool:
        try:
            self.page.locator(selector).first.wait_for(state="visible", timeout=to_ms(timeout_sec))
        except PlaywrightTimeoutError:
            return False
        return True

    def pause(self, seconds: float) -> None:
        self.page.wait_for_timeout(int(seconds * 1000))

    def enable_downloads(self, directory: Path) -> None:
        """Save every download of this page into ``directory``.

        Files are written under a ``.crdownload`` name and renamed once
        complete, so a half-written file never carries its final name.
        """
        self.download_dir = directory
        self.page.on("download", self.on_download)

    def on_download(self, download: Any) -> None:
        if self.download_dir is None:
            return
        try:
            name = download.suggested_filename
        except PlaywrightError:
            name = "unknown"
        try:
            target = unique_path(self.download_dir / str(name))
            temp = target.with_name(target.name + IN_PROGRESS_SUFFIX)
            download.save_as(str(temp))
            temp.replace(target)
            self.saved_downloads.append(target.name)
        except (PlaywrightError, OSError) as exc:
            self.download_errors.append(f"{name}: {exc}")
            print(f"[!] Could not save download {name}: {exc}")


@contextlib.contextmanager
def open_browser_session(config: RunConfiguration) -> Iterator[BrowserSession]:
    """Launch (or attach to) Chromium and yield a session on a fresh page.

    The page, the browser and Playwright itself are released on every exit
    path. An attached browser is only disconnected, not shut down.
    """
    with sync_playwright() as p:
        if config.cdp_url:
            print(f"[i] Connecting to running browser at {config.cdp_url}")
            browser = p.chromium.connect_over_cdp(config.cdp_url)
            context = browser.contexts[0] if browser.contexts else browser.new_context()
        else:
            print(f"[i] Launching Chromium (headless={config.headless})")
            browser = p.chromium.launch(headless=config.headless)
            context = browser.new_context(accept_downloads=True, user_agent=USER_AGENT)
        try:
            page = context.new_page()
            try:
                yield BrowserSession(page)
            finally:
                with contextlib.suppress(PlaywrightError):
                    page.close()
        finally:
            with contextlib.suppress(PlaywrightError):
                browser.close()
            print("[i] Browser session released.")
