#!/usr/bin/env python3
"""Console progress messages and per-run log files."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any


def now_stamp() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


class Reporter:
    """Receives traversal events. The base class ignores them."""

    def download_started(self, photo_number: int) -> None:
        pass

    def download_succeeded(self, filename: str) -> None:
        pass

    def advancing(self, photo_number: int) -> None:
        pass

    def end_of_gallery(self) -> None:
        pass

    def finished(self, photo_count: int) -> None:
        pass


class ConsoleReporter(Reporter):
    def download_started(self, photo_number: int) -> None:
        print(f"[i] Downloading photo {photo_number}...")

    def download_succeeded(self, filename: str) -> None:
        print(f"[+] Downloaded: {filename}")

    def advancing(self, photo_number: int) -> None:
        print(f"[i] Moving to photo {photo_number}...")

    def end_of_gallery(self) -> None:
        print("[i] End of album reached")

    def finished(self, photo_count: int) -> None:
        print(f"[+] Finished! Downloaded {photo_count} photos")


def build_summary_lines(run_id: str, run_data: dict[str, Any], json_log: Path) -> list[str]:
    lines = [
        f"run_id: {run_id}",
        f"gallery_url: {run_data['gallery_url']}",
        f"download_dir: {run_data['download_dir']}",
        f"photo_count: {run_data['photo_count']}",
        f"advances: {run_data['advances']}",
        f"outcome: {run_data['outcome']}",
    ]
    if run_data.get("fatal_error"):
        lines.append(f"fatal_error: {run_data['fatal_error']}")
    lines.append(f"json_log: {json_log}")
    return lines


def write_run_logs(log_dir: Path, run_id: str, run_data: dict[str, Any]) -> tuple[Path, Path]:
    log_dir.mkdir(parents=True, exist_ok=True)
    json_log = log_dir / f"gallery-downloader-{run_id}.json"
    txt_log = log_dir / f"gallery-downloader-{run_id}.txt"
    summary_lines = build_summary_lines(run_id, run_data, json_log)
    json_log.write_text(json.dumps(run_data, indent=2), encoding="utf-8")
    txt_log.write_text("\n".join(summary_lines) + "\n", encoding="utf-8")
    return json_log, txt_log
