"""
Shared enums for the clock service.

All enums are ``str`` subclasses so plain strings (``"minute"``,
``"preserve-absolute"``) compare equal and can be passed anywhere an enum
member is expected.

STDLIB ONLY - NO PYDANTIC.
"""

from enum import Enum


class AlignMode(str, Enum):
    """Granularity to which tick emission is snapped."""

    NONE = "none"        # Fixed 1000 ms cadence, no boundary alignment
    SECOND = "second"    # Top of every second
    MINUTE = "minute"    # Top of every minute

    @property
    def unit_ms(self) -> int:
        """Length of one alignment unit in milliseconds."""
        return 60_000 if self is AlignMode.MINUTE else 1_000


class TransitionMode(str, Enum):
    """Declared semantics of a timezone change.

    PRESERVE_WALL_CLOCK realigns the schedule to the new zone's wall-clock
    boundaries. PRESERVE_ABSOLUTE keeps the pending absolute firing instant
    and only changes how later instants are rendered.
    """

    PRESERVE_WALL_CLOCK = "preserve-wall-clock"
    PRESERVE_ABSOLUTE = "preserve-absolute"


class EventKind(str, Enum):
    """Event kinds published on the clock's event bus."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    TIMEZONE_CHANGE = "timezoneChange"


# Event kind emitted for each align mode; NONE only drives ``hour``
ALIGN_EVENT_KIND: dict[AlignMode, EventKind | None] = {
    AlignMode.NONE: None,
    AlignMode.SECOND: EventKind.SECOND,
    AlignMode.MINUTE: EventKind.MINUTE,
}


__all__ = ["AlignMode", "TransitionMode", "EventKind", "ALIGN_EVENT_KIND"]
