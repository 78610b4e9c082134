"""
Timezone resolution and the active-timezone manager.

``resolve_zone`` / ``localize_instant`` are the zoneinfo-backed primitives
every environment uses for ``localize``. ``TimezoneManager`` owns the single
mutable timezone identifier of a clock and performs reconfiguration:

    set_time_zone(tz, mode)
        │
        ├── validate tz (ConfigurationError, state untouched)
        ├── prev = current; current = tz
        ├── PRESERVE_WALL_CLOCK → scheduler.restart()
        │   PRESERVE_ABSOLUTE   → pending timer kept as-is
        └── emit timezoneChange {from, to, mode}
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timekeeper.enums import EventKind, TransitionMode
from timekeeper.errors import ConfigurationError
from timekeeper.events import EventBus, TimezoneChangeEvent
from timekeeper.logging import get_logger

if TYPE_CHECKING:
    from timekeeper.scheduling.scheduler import TickScheduler

__all__ = [
    "TimezoneManager",
    "resolve_zone",
    "localize_instant",
    "coerce_transition_mode",
]

logger = get_logger(__name__)


def resolve_zone(timezone_id: str) -> ZoneInfo:
    """Look up an IANA timezone.

    Raises:
        ConfigurationError: unknown or malformed identifier
    """
    if not isinstance(timezone_id, str) or not timezone_id:
        raise ConfigurationError(
            f"Timezone must be a non-empty IANA identifier, got {timezone_id!r}",
            key="timezone",
            value=timezone_id,
        )
    try:
        return ZoneInfo(timezone_id)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ConfigurationError(
            f"Unknown timezone: {timezone_id!r}",
            key="timezone",
            value=timezone_id,
            cause=e,
        ) from e


def localize_instant(instant_ms: float, timezone_id: str) -> datetime:
    """Render epoch milliseconds as an aware datetime in ``timezone_id``."""
    return datetime.fromtimestamp(instant_ms / 1000, tz=resolve_zone(timezone_id))


def coerce_transition_mode(mode: TransitionMode | str) -> TransitionMode:
    try:
        return TransitionMode(mode)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown timezone transition mode: {mode!r}",
            key="mode",
            value=mode,
            cause=e,
        ) from e


class TimezoneManager:
    """Holds the active timezone of one clock and applies changes atomically.

    The scheduler is attached after construction because it reads the
    active timezone from this manager to compute wall-clock boundaries.
    """

    def __init__(
        self,
        bus: EventBus,
        timezone_id: str,
        scheduler: TickScheduler | None = None,
    ) -> None:
        resolve_zone(timezone_id)
        self._bus = bus
        self._current = timezone_id
        self.scheduler = scheduler

    @property
    def current(self) -> str:
        return self._current

    def get_time_zone(self) -> str:
        """Current timezone identifier."""
        return self._current

    def set_time_zone(
        self,
        timezone_id: str,
        mode: TransitionMode | str = TransitionMode.PRESERVE_WALL_CLOCK,
    ) -> TimezoneChangeEvent:
        """Switch the active timezone and announce the change.

        Args:
            timezone_id: IANA identifier (e.g. ``UTC``, ``America/Los_Angeles``)
            mode: PRESERVE_WALL_CLOCK realigns ticks to the new zone's
                boundaries; PRESERVE_ABSOLUTE keeps the pending firing instant.

        Returns:
            The emitted TimezoneChangeEvent.

        Raises:
            ConfigurationError: unknown timezone or mode; nothing changes.
        """
        resolve_zone(timezone_id)
        mode = coerce_transition_mode(mode)

        prev = self._current
        self._current = timezone_id

        if mode is TransitionMode.PRESERVE_WALL_CLOCK and self.scheduler is not None:
            self.scheduler.restart()

        event = TimezoneChangeEvent(from_tz=prev, to_tz=timezone_id, mode=mode)
        logger.info("timezone_changed", **event.to_dict())
        self._bus.emit(EventKind.TIMEZONE_CHANGE, event)
        return event
