"""Wall-clock formatting.

Only three patterns are supported; anything richer belongs to a calendar
library, not the clock.

    HH:mm                  → 09:05
    HH:mm:ss               → 09:05:07
    YYYY-MM-DDTHH:mm:ss    → 2025-01-01T09:05:07
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

__all__ = ["TimeFormat", "format_instant"]


class TimeFormat(str, Enum):
    HOUR_MINUTE = "HH:mm"
    HOUR_MINUTE_SECOND = "HH:mm:ss"
    ISO_LOCAL = "YYYY-MM-DDTHH:mm:ss"


def format_instant(dt: datetime, pattern: TimeFormat | str) -> str:
    """Render ``dt`` (already in the wanted zone) with a supported pattern.

    Raises:
        ValueError: unsupported pattern
    """
    try:
        fmt = TimeFormat(pattern)
    except ValueError:
        supported = ", ".join(p.value for p in TimeFormat)
        raise ValueError(f"Unsupported pattern {pattern!r}; expected one of: {supported}") from None

    clock = f"{dt.hour:02d}:{dt.minute:02d}"
    if fmt is TimeFormat.HOUR_MINUTE:
        return clock
    clock = f"{clock}:{dt.second:02d}"
    if fmt is TimeFormat.HOUR_MINUTE_SECOND:
        return clock
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T{clock}"
