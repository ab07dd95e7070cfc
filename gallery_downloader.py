#!/usr/bin/env python3
"""
Download every photo of a web gallery by driving a browser.

The tool opens the gallery page, clicks the "open image" link of the photo on
screen, waits until the browser has finished writing the file into the
target directory, clicks "next" and repeats. A missing "next" control ends
the run normally.

Each run writes a JSON and a text summary into --log-dir.
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from browser_session import open_browser_session
from download_watcher import DownloadWatcher, ensure_empty_directory
from errors import DownloadTimeout, InvalidInput, PreconditionFailed
from gallery_walker import GalleryWalker
from reporting import ConsoleReporter, build_summary_lines, now_stamp, write_run_logs
from run_config import FileConfig, RunConfiguration, load_config, resolve_config


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download every photo of a web gallery through a controlled browser."
    )
    # Optional at parser level so a missing URL exits with our own message and code.
    parser.add_argument("gallery_url", nargs="?", help="Gallery page URL (wrap it in quotes).")
    parser.add_argument("--output-dir", dest="download_dir", type=Path, help="Target directory (default: photos).")
    parser.add_argument("--config", type=Path, help="Optional JSON file with timeouts and selectors.")
    parser.add_argument("--headless", action="store_true", help="Run the browser without a window.")
    parser.add_argument("--cdp-url", help="Attach to a running browser, e.g. http://127.0.0.1:9222")
    parser.add_argument("--log-dir", type=Path, help="Directory for run logs (default: logs).")
    parser.add_argument("--download-timeout-sec", type=float, help="Max wait for one download.")
    parser.add_argument("--element-timeout-sec", type=float, help="Max wait for a page control.")
    parser.add_argument("--settle-delay-sec", type=float, help="Pause after moving to the next photo.")
    parser.add_argument("--poll-interval-sec", type=float, help="Download directory poll interval.")
    return parser.parse_args(argv)


def prepare_run(args: argparse.Namespace) -> RunConfiguration:
    file_config = load_config(args.config) if args.config else FileConfig()
    config = resolve_config(args, file_config)
    ensure_empty_directory(config.download_dir)
    return config


def run_gallery(config: RunConfiguration, run_data: dict[str, Any]) -> None:
    reporter = ConsoleReporter()
    with open_browser_session(config) as session:
        session.enable_downloads(config.download_dir)
        watcher = DownloadWatcher(
            config.download_dir,
            timeout_sec=config.download_timeout_sec,
            poll_interval_sec=config.poll_interval_sec,
            partial_suffixes=config.partial_suffixes,
            sleep=session.pause,
        )
        walker = GalleryWalker(session, watcher, config, reporter)
        print(f"[+] Loading gallery page: {config.gallery_url}")
        try:
            walker.run()
        finally:
            run_data["photo_count"] = walker.photo_count
            run_data["advances"] = walker.advances
            run_data["files"] = list(walker.files)
            run_data["final_state"] = walker.state.value
            run_data["download_errors"] = list(session.download_errors)
            run_data["saved_downloads"] = list(session.saved_downloads)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = prepare_run(args)
    except InvalidInput as exc:
        print(f"[!] {exc}")
        for hint in exc.hints:
            print(hint)
        return 1
    except PreconditionFailed as exc:
        print(f"[!] {exc}")
        return 1

    run_id = now_stamp()
    run_data: dict[str, Any] = {
        "run_id": run_id,
        "timestamp": datetime.now().isoformat(),
        "gallery_url": config.gallery_url,
        "download_dir": str(config.download_dir),
        "headless": config.headless,
        "cdp_url": config.cdp_url,
        "photo_count": 0,
        "advances": 0,
        "files": [],
        "outcome": "running",
    }

    interrupted = False
    try:
        run_gallery(config, run_data)
        run_data["outcome"] = "done"
    except KeyboardInterrupt:
        interrupted = True
        run_data["outcome"] = "interrupted"
        run_data["fatal_error"] = "Interrupted by user (Ctrl+C)"
        print("\n[!] Interrupted by user. Writing partial logs.")
    except DownloadTimeout as exc:
        run_data["outcome"] = "download_timeout"
        run_data["fatal_error"] = str(exc)
        print(f"[!] {exc}")
    except Exception as exc:
        run_data["outcome"] = "critical_error"
        run_data["fatal_error"] = f"{type(exc).__name__}: {exc}"
        print(f"[!] Critical error: {exc}")

    json_log, txt_log = write_run_logs(config.log_dir, run_id, run_data)
    print("\n" + "=" * 64)
    for line in build_summary_lines(run_id, run_data, json_log):
        print(line)
    print(f"txt_log: {txt_log}")

    if interrupted:
        return 130
    if run_data.get("fatal_error"):
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
