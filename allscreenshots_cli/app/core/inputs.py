from __future__ import annotations

import re
from pathlib import Path
from typing import List

import httpx

from allscreenshots_cli.app.core.errors import (
    FileReadError,
    InputFileNotFoundError,
    InputValidationError,
    InvalidUrlError,
)
from allscreenshots_cli.app.services.models import BlockLevel, ImageFormat, LayoutType, WaitUntil

MAX_BATCH_URLS = 100
MIN_COMPOSE_URLS = 2
MAX_COMPOSE_URLS = 20
_HEX_COLOR = re.compile(r"#[0-9a-fA-F]{6}")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|mins|min|m|secs|sec|s|hrs|hr|h|d)?", re.IGNORECASE)
_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "sec": 1.0,
    "secs": 1.0,
    "m": 60.0,
    "min": 60.0,
    "mins": 60.0,
    "h": 3600.0,
    "hr": 3600.0,
    "hrs": 3600.0,
    "d": 86400.0,
}


def normalize_url(value: str) -> str:
    """Add ``https://`` when no scheme is given and make sure the result parses."""
    candidate = value.strip()
    if not candidate.startswith(("http://", "https://")):
        candidate = f"https://{candidate}"
    if any(ch.isspace() for ch in candidate):
        raise InvalidUrlError(value)
    try:
        parsed = httpx.URL(candidate)
    except (httpx.InvalidURL, ValueError) as exc:
        raise InvalidUrlError(value) from exc
    if not parsed.host:
        raise InvalidUrlError(value)
    return candidate


def extract_domain(url: str) -> str:
    try:
        host = httpx.URL(url).host
    except (httpx.InvalidURL, ValueError):
        host = ""
    return (host or "screenshot").replace(".", "_")


def read_urls_from_file(path: Path) -> List[str]:
    if not path.exists():
        raise InputFileNotFoundError(str(path))
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileReadError(f"{path}: {exc}") from exc

    urls = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)

    if not urls:
        raise InputValidationError(f"No URLs found in {path}")
    return urls


def validate_batch_size(urls: List[str]) -> None:
    if not urls:
        raise InputValidationError("No URLs provided. Use positional arguments or --file")
    if len(urls) > MAX_BATCH_URLS:
        raise InputValidationError(f"Too many URLs ({len(urls)}). Maximum is {MAX_BATCH_URLS} per batch.")


def parse_format(value: str, *, allow_pdf: bool = True) -> ImageFormat:
    key = value.strip().lower()
    if key == "jpg":
        key = "jpeg"
    try:
        fmt = ImageFormat(key)
    except ValueError:
        fmt = None
    if fmt is None or (fmt is ImageFormat.PDF and not allow_pdf):
        choices = "png, jpeg, webp, or pdf" if allow_pdf else "png, jpeg, or webp"
        raise InputValidationError(f"Invalid format '{value}'. Use: {choices}")
    return fmt


def parse_wait_until(value: str) -> WaitUntil:
    try:
        return WaitUntil(value.strip().lower())
    except ValueError:
        raise InputValidationError(
            f"Invalid wait_until '{value}'. Use: load, domcontentloaded, networkidle, or commit"
        ) from None


def parse_block_level(value: str) -> BlockLevel:
    key = value.strip().lower()
    if key == "proplus":
        key = "pro_plus"
    try:
        return BlockLevel(key)
    except ValueError:
        raise InputValidationError(
            f"Invalid block_level '{value}'. Use: none, light, normal, pro, pro_plus, or ultimate"
        ) from None


def parse_duration(value: str) -> float:
    """Parse ``5s``, ``1m``, ``1h30m``, ``500ms`` or a bare number of seconds."""
    text = value.strip()
    total = 0.0
    pos = 0
    matched = False
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match = _DURATION_PART.match(text, pos)
        if not match or match.end() == pos:
            matched = False
            break
        unit = (match.group(2) or "s").lower()
        total += float(match.group(1)) * _DURATION_UNITS[unit]
        pos = match.end()
        matched = True
    if not matched or total <= 0:
        raise InputValidationError(f"Invalid duration '{value}'. Examples: 5s, 30s, 1m, 5m")
    return total


def validate_compose_size(urls: List[str]) -> None:
    if not MIN_COMPOSE_URLS <= len(urls) <= MAX_COMPOSE_URLS:
        raise InputValidationError(
            f"Compose needs between {MIN_COMPOSE_URLS} and {MAX_COMPOSE_URLS} URLs (got {len(urls)})"
        )


def parse_layout(value: str) -> LayoutType:
    try:
        return LayoutType(value.strip().lower())
    except ValueError:
        raise InputValidationError(
            f"Invalid layout '{value}'. Use: grid, horizontal, vertical, masonry, mondrian, partitioning, or auto"
        ) from None


def parse_background(value: str) -> str:
    if value.lower() == "transparent":
        return "transparent"
    if not _HEX_COLOR.fullmatch(value):
        raise InputValidationError(f"Invalid background '{value}'. Use #RRGGBB or transparent")
    return value


def validate_range(name: str, value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise InputValidationError(f"{name} must be between {low} and {high} (got {value})")
    return value


def validate_non_negative(name: str, value: int) -> int:
    if value < 0:
        raise InputValidationError(f"{name} must not be negative (got {value})")
    return value
