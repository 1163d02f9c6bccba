"""Display helpers shared by the upstream clients and the embed builders."""

from __future__ import annotations

_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

# Discord embed field value limit
FIELD_LIMIT = 1024


def format_bytes(num: float | None) -> str:
    if not num:
        return "0 B"
    size = float(num)
    for unit in _SIZE_UNITS:
        if abs(size) < 1024 or unit == _SIZE_UNITS[-1]:
            return f"{size:.2f} {unit}".replace(".00 ", " ")
        size /= 1024
    return f"{size:.2f} TB"


def format_speed(bytes_per_second: float | None) -> str:
    return f"{format_bytes(bytes_per_second)}/s"


def format_duration(seconds: int | None) -> str:
    """Format a number of seconds as ``1h 5m`` / ``12m``."""
    if not seconds or seconds < 0:
        return "0m"
    hours, rem = divmod(int(seconds), 3600)
    minutes = rem // 60
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_eta(seconds: int | None) -> str:
    """qBittorrent reports 8640000 for an unknown ETA."""
    if seconds is None or seconds < 0 or seconds >= 8_640_000:
        return "Unknown"
    if seconds < 60:
        return f"{seconds}s"
    return format_duration(seconds)


def progress_bar(percent: float, width: int = 10) -> str:
    filled = max(0, min(width, round(percent / 100 * width)))
    return "▰" * filled + "▱" * (width - filled)


def truncate(text: str, limit: int = FIELD_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"
