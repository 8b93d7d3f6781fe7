# cybershieldx/utils/formatting.py
"""Human-readable formatting for byte sizes and durations."""

from __future__ import annotations

from typing import Optional

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]


def format_bytes(num_bytes: Optional[float], decimals: int = 2) -> str:
    """
    Base-1024 size string, e.g. 1536 → "1.5 KB".

    Trailing zeros are dropped (2048 → "2 KB"). None or unparseable input
    yields "Unknown"; zero yields "0 Bytes".
    """
    if num_bytes is None:
        return "Unknown"
    try:
        value = float(num_bytes)
    except (TypeError, ValueError):
        return "Unknown"
    if value <= 0:
        return "0 Bytes"

    decimals = max(0, decimals)
    i = 0
    while value >= 1024 and i < len(BYTE_UNITS) - 1:
        value /= 1024
        i += 1
    text = f"{value:.{decimals}f}"
    if decimals:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[i]}"


def format_uptime(seconds: float) -> str:
    """"12 days, 3 hours, 4 minutes"; the days part is omitted when zero."""
    seconds = int(max(0, seconds))
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    result = f"{days} days, " if days > 0 else ""
    return result + f"{hours} hours, {minutes} minutes"


def format_duration(ms: float) -> str:
    """Milliseconds → "1h 2m 3s" / "2m 3s" / "3s"."""
    seconds = int(max(0, ms) // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def uptime_days(uptime: Optional[str]) -> int:
    """Leading day count of a format_uptime() string, 0 when absent."""
    if not uptime or "days" not in uptime:
        return 0
    head = uptime.split(" ", 1)[0]
    return int(head) if head.isdigit() else 0
