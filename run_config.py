#!/usr/bin/env python3
"""Run configuration for the gallery downloader."""

from __future__ import annotations

import argparse
import ipaddress
import json
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from errors import InvalidInput

DEFAULT_IMAGE_LINK_SELECTOR = '[title="Zobraziť obrázok v novom okne"]'
DEFAULT_NEXT_BUTTON_SELECTOR = "div >> text=chevron_right"
PARTIAL_DOWNLOAD_SUFFIXES = (".crdownload", ".part", ".tmp")

# Schemes browsers parse with host rules (file may leave the host empty).
SPECIAL_SCHEMES = {"http", "https", "ftp", "ws", "wss", "file"}
SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(.*)$", re.DOTALL)
URL_NOISE_RE = re.compile(r"[\t\n\r]")
PERCENT_BYTE_RE = re.compile(rb"%([0-9A-Fa-f]{2})")
WINDOWS_DRIVE_RE = re.compile(r"[A-Za-z][:|]")
C0_CONTROL_OR_SPACE = "".join(chr(c) for c in range(0x21))
FORBIDDEN_HOST_CHARS = set("\x00\t\n\r #/:<>?@[\\]^|")
FORBIDDEN_DOMAIN_CHARS = FORBIDDEN_HOST_CHARS | set("%\x7f") | {chr(c) for c in range(0x20)}

URL_HINTS = [
    "Common issues:",
    "- Missing URL protocol (https://)",
    "- Unescaped special characters (# or :) - use quotes!",
    "- Malformed URL structure",
]

USAGE_HINTS = [
    'Usage: gallery-downloader "<gallery-url>"',
    "Note: Wrap URLs with special characters in quotes!",
    'Example: gallery-downloader "https://www.zsgrosslingova.sk/gallery-1"',
]


@dataclass(frozen=True)
class RunConfiguration:
    gallery_url: str
    download_dir: Path = Path("photos")
    download_timeout_sec: float = 30.0
    element_timeout_sec: float = 15.0
    settle_delay_sec: float = 2.0
    poll_interval_sec: float = 0.5
    image_link_selector: str = DEFAULT_IMAGE_LINK_SELECTOR
    next_button_selector: str = DEFAULT_NEXT_BUTTON_SELECTOR
    partial_suffixes: tuple[str, ...] = PARTIAL_DOWNLOAD_SUFFIXES
    headless: bool = False
    cdp_url: Optional[str] = None
    log_dir: Path = Path("logs")


@dataclass
class FileConfig:
    """Optional overrides read from a JSON config file."""

    download_dir: Optional[Path] = None
    download_timeout_sec: Optional[float] = None
    element_timeout_sec: Optional[float] = None
    settle_delay_sec: Optional[float] = None
    poll_interval_sec: Optional[float] = None
    image_link_selector: Optional[str] = None
    next_button_selector: Optional[str] = None
    headless: Optional[bool] = None
    cdp_url: Optional[str] = None
    log_dir: Optional[Path] = None


DURATION_KEYS = ("download_timeout_sec", "element_timeout_sec", "settle_delay_sec", "poll_interval_sec")
SELECTOR_KEYS = ("image_link_selector", "next_button_selector")


def _path_or_none(value: Any) -> Optional[Path]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    return Path(text)


def _str_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _number_or_none(key: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"Config value {key!r} must be a number, got {value!r}")
    return float(value)


def load_config(path: Path) -> FileConfig:
    if not path.exists():
        return FileConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidInput(f"Could not read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise InvalidInput(f"Config file {path} must contain a JSON object")

    headless = raw.get("headless")
    return FileConfig(
        download_dir=_path_or_none(raw.get("download_dir")),
        download_timeout_sec=_number_or_none("download_timeout_sec", raw.get("download_timeout_sec")),
        element_timeout_sec=_number_or_none("element_timeout_sec", raw.get("element_timeout_sec")),
        settle_delay_sec=_number_or_none("settle_delay_sec", raw.get("settle_delay_sec")),
        poll_interval_sec=_number_or_none("poll_interval_sec", raw.get("poll_interval_sec")),
        image_link_selector=_str_or_none(raw.get("image_link_selector")),
        next_button_selector=_str_or_none(raw.get("next_button_selector")),
        headless=headless if isinstance(headless, bool) else None,
        cdp_url=_str_or_none(raw.get("cdp_url")),
        log_dir=_path_or_none(raw.get("log_dir")),
    )


def _percent_decode(text: str) -> str:
    data = PERCENT_BYTE_RE.sub(lambda m: bytes([int(m.group(1), 16)]), text.encode("utf-8"))
    return data.decode("utf-8", errors="replace")


def _ipv4_number(part: str) -> Optional[int]:
    if not part:
        return None
    if part[:2] in ("0x", "0X"):
        digits, radix, pattern = part[2:], 16, r"[0-9A-Fa-f]*"
    elif len(part) > 1 and part[0] == "0":
        digits, radix, pattern = part[1:], 8, r"[0-7]*"
    else:
        digits, radix, pattern = part, 10, r"[0-9]+"
    if not re.fullmatch(pattern, digits):
        return None
    return int(digits, radix) if digits else 0


def _host_parts(domain: str) -> list[str]:
    parts = domain.split(".")
    if parts[-1] == "" and len(parts) > 1:
        parts.pop()
    return parts


def _ends_in_number(domain: str) -> bool:
    last = _host_parts(domain)[-1]
    if re.fullmatch(r"[0-9]+", last):
        return True
    return bool(re.fullmatch(r"0[xX][0-9A-Fa-f]*", last))


def _is_ipv4(domain: str) -> bool:
    parts = _host_parts(domain)
    if len(parts) > 4:
        return False
    numbers = [_ipv4_number(part) for part in parts]
    if any(n is None for n in numbers):
        return False
    if any(n > 255 for n in numbers[:-1]):
        return False
    return numbers[-1] < 256 ** (5 - len(numbers))


def _valid_host(host: str, special: bool) -> bool:
    if host.startswith("["):
        if not host.endswith("]") or "%" in host:
            return False
        try:
            ipaddress.IPv6Address(host[1:-1])
        except ValueError:
            return False
        return True
    if not special:
        return not any(ch in FORBIDDEN_HOST_CHARS for ch in host)

    domain = _percent_decode(host)
    try:
        domain = domain.lower() if domain.isascii() else domain.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return False
    if not domain or any(ch in FORBIDDEN_DOMAIN_CHARS for ch in domain):
        return False
    if _ends_in_number(domain):
        return _is_ipv4(domain)
    return True


def _valid_authority(authority: str, special: bool) -> bool:
    host_port = authority.rsplit("@", 1)[-1]
    if host_port.startswith("["):
        end = host_port.find("]")
        if end == -1:
            return False
        host, port = host_port[: end + 1], host_port[end + 1 :]
        if port and not port.startswith(":"):
            return False
        port = port[1:]
    else:
        host, _, port = host_port.partition(":")
    if port and not re.fullmatch(r"[0-9]+", port):
        return False
    if port and int(port) > 65535:
        return False
    if not host:
        return not special and host_port == authority and not port
    return _valid_host(host, special)


def is_valid_url(text: str) -> bool:
    """Accept the absolute URLs a browser's ``new URL()`` accepts.

    Tabs and newlines are dropped and leading/trailing controls or spaces
    trimmed before parsing. Paths, queries and fragments accept anything;
    only the scheme, host and port can make a URL invalid.
    """
    value = URL_NOISE_RE.sub("", text.strip(C0_CONTROL_OR_SPACE))
    match = SCHEME_RE.match(value)
    if not match:
        return False
    scheme, rest = match.group(1).lower(), match.group(2)

    if scheme == "file":
        if rest[:2] in ("//", "\\\\", "/\\", "\\/"):
            host = re.split(r"[/\\?#]", rest[2:], maxsplit=1)[0]
            if not host or WINDOWS_DRIVE_RE.fullmatch(host):
                return True
            return _valid_host(host, special=True)
        return True
    if scheme in SPECIAL_SCHEMES:
        authority = re.split(r"[/\\?#]", rest.lstrip("/\\"), maxsplit=1)[0]
        return _valid_authority(authority, special=True)
    if rest.startswith("//"):
        authority = re.split(r"[/?#]", rest[2:], maxsplit=1)[0]
        return _valid_authority(authority, special=False)
    return True


def _pick(name: str, args: argparse.Namespace, file_config: FileConfig) -> Any:
    value = getattr(args, name, None)
    if value is not None:
        return value
    return getattr(file_config, name)


def resolve_config(args: argparse.Namespace, file_config: Optional[FileConfig] = None) -> RunConfiguration:
    file_config = file_config or FileConfig()

    url = args.gallery_url
    if url is None or not url.strip():
        raise InvalidInput("Missing required gallery URL argument", hints=USAGE_HINTS)
    if not is_valid_url(url):
        raise InvalidInput(f"Invalid URL format detected: {url}", hints=URL_HINTS)

    config = RunConfiguration(gallery_url=url.strip())
    overrides: dict[str, Any] = {}
    for name in ("download_dir", "log_dir", "cdp_url", *DURATION_KEYS, *SELECTOR_KEYS):
        value = _pick(name, args, file_config)
        if value is not None:
            overrides[name] = value
    if getattr(args, "headless", False):
        overrides["headless"] = True
    elif file_config.headless is not None:
        overrides["headless"] = file_config.headless
    config = replace(config, **overrides)

    for name in DURATION_KEYS:
        if name == "settle_delay_sec":
            continue
        if getattr(config, name) <= 0:
            raise InvalidInput(f"{name} must be positive, got {getattr(config, name)}")
    if config.settle_delay_sec < 0:
        raise InvalidInput(f"settle_delay_sec must not be negative, got {config.settle_delay_sec}")
    if config.poll_interval_sec >= config.download_timeout_sec:
        raise InvalidInput("poll_interval_sec must be smaller than download_timeout_sec")
    if config.cdp_url is not None and not is_valid_url(config.cdp_url):
        raise InvalidInput(f"Invalid CDP URL: {config.cdp_url}")
    return config
