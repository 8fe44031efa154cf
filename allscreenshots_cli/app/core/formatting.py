from typing import List, Tuple

KB = 1024
MB = KB * 1024
GB = MB * 1024

DEVICE_PRESETS: List[Tuple[str, str]] = [
    ("Desktop HD", "1920x1080"),
    ("Desktop", "1440x900"),
    ("Laptop", "1366x768"),
    ("Tablet Landscape", "1024x768"),
    ("Tablet Portrait", "768x1024"),
    ("iPhone 14 Pro Max", "430x932"),
    ("iPhone 14 Pro", "393x852"),
    ("iPhone 14", "390x844"),
    ("iPhone SE", "375x667"),
    ("iPad Pro 12.9", "1024x1366"),
    ("iPad Pro 11", "834x1194"),
    ("iPad", "820x1180"),
    ("iPad Mini", "744x1133"),
    ("Android Large", "412x915"),
    ("Android Medium", "393x873"),
    ("Android Small", "360x800"),
]


def format_file_size(size: int) -> str:
    if size >= GB:
        return f"{size / GB:.2f} GB"
    if size >= MB:
        return f"{size / MB:.2f} MB"
    if size >= KB:
        return f"{size / KB:.2f} KB"
    return f"{size} bytes"


def format_duration_ms(ms: int) -> str:
    if ms >= 60_000:
        return f"{ms // 60_000}m {(ms % 60_000) // 1000}s"
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{ms}ms"


def format_interval(seconds: float) -> str:
    """Human readable form of a watch interval (``5s``, ``1m 30s``)."""
    if seconds < 1:
        return f"{int(round(seconds * 1000))}ms"
    whole = int(seconds)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def truncate_url(url: str, max_len: int = 50) -> str:
    if len(url) <= max_len:
        return url
    return f"{url[:max_len - 3]}..."


def format_number(value: int) -> str:
    return f"{value:,}"
