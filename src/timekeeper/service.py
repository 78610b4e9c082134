"""Clock service - lifecycle owner and public surface.

Manifesto:
    One explicitly constructed object owns every clock component, starts
    them together and tears them down together. There is no module-level
    instance; applications create one and pass it around, tests create one
    per test on a virtual environment.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMEKEEPER                                                                   │
│                                                                               │
│   ┌───────────────┐   ┌────────────────┐   ┌───────────────────┐             │
│   │  EventBus     │◄──│ TickScheduler  │◄──│ VisibilityMonitor │             │
│   │  (dispatch)   │   │ (timing)       │   │ (resume signal)   │             │
│   └───────▲───────┘   └───────▲────────┘   └───────────────────┘             │
│           │                   │ restart()                                     │
│           │           ┌───────┴─────────┐                                     │
│           └───────────│ TimezoneManager │                                     │
│                       └─────────────────┘                                     │
│                                                                               │
│   construction:  validate → attach visibility → scheduler.start()            │
│   dispose():     cancel timer → detach visibility → clear listeners          │
│                  (idempotent, never raises)                                   │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from timekeeper.enums import AlignMode, EventKind, TransitionMode
from timekeeper.environment.protocol import Environment
from timekeeper.errors import ConfigurationError, ListenerFailure
from timekeeper.events import EventBus, Listener, TimezoneChangeEvent
from timekeeper.formatting import TimeFormat, format_instant
from timekeeper.logging import get_logger
from timekeeper.scheduling.drift import check_tick_interval_stability
from timekeeper.scheduling.scheduler import SchedulerStats, TickScheduler
from timekeeper.scheduling.visibility import VisibilityMonitor
from timekeeper.settings import DEFAULT_DRIFT_THRESHOLD_MS, DEFAULT_TIMEZONE, ClockSettings
from timekeeper.timezones import TimezoneManager

__all__ = ["TimeKeeper", "ClockHealth"]

logger = get_logger(__name__)


@dataclass
class ClockHealth:
    """Health status for one clock."""

    healthy: bool
    running: bool
    timezone: str
    align: AlignMode
    pending_timer: bool
    visibility_attached: bool
    listener_count: int = 0
    listener_failures: int = 0
    stats: SchedulerStats = field(default_factory=SchedulerStats)
    interval: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "healthy": self.healthy,
            "running": self.running,
            "timezone": self.timezone,
            "align": self.align.value,
            "pending_timer": self.pending_timer,
            "visibility_attached": self.visibility_attached,
            "listener_count": self.listener_count,
            "listener_failures": self.listener_failures,
            "stats": self.stats.to_dict(),
            "interval": self.interval,
        }


def _coerce_align(align: AlignMode | str) -> AlignMode:
    try:
        return AlignMode(align)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown align mode: {align!r}", key="align", value=align, cause=e
        ) from e


class TimeKeeper:
    """Boundary-aligned clock emitting ``second``/``minute``/``hour`` ticks.

    Example:
        >>> clock = TimeKeeper(timezone="UTC", align="minute", environment=env)
        >>> clock.on("minute", lambda event: print(event.zoned_instant))
        >>> clock.set_time_zone("America/Los_Angeles")
        >>> clock.format("HH:mm")
        '04:01'
        >>> clock.dispose()

    Args:
        timezone: Initial IANA timezone (default ``Asia/Seoul``)
        align: ``none`` | ``second`` | ``minute`` (default ``minute``)
        visibility_aware: Realign on the host's foreground-resume signal
        drift_threshold_ms: Max |actual - expected| for an accepted tick
        environment: Host capability; an ``AsyncioEnvironment`` on the
            running loop when omitted
        on_listener_error: Called with each isolated ``ListenerFailure``

    Raises:
        ConfigurationError: invalid timezone, align mode or threshold
    """

    def __init__(
        self,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        align: AlignMode | str = AlignMode.MINUTE,
        visibility_aware: bool = True,
        drift_threshold_ms: float = DEFAULT_DRIFT_THRESHOLD_MS,
        environment: Environment | None = None,
        on_listener_error: Callable[[ListenerFailure], None] | None = None,
    ) -> None:
        align = _coerce_align(align)
        if drift_threshold_ms < 0:
            raise ConfigurationError(
                "drift_threshold_ms must be non-negative",
                key="drift_threshold_ms",
                value=drift_threshold_ms,
            )

        self._bus = EventBus(on_error=on_listener_error)
        self._timezones = TimezoneManager(self._bus, timezone)

        if environment is None:
            from timekeeper.environment.asyncio_env import AsyncioEnvironment

            environment = AsyncioEnvironment()
        self._environment = environment

        self._scheduler = TickScheduler(
            environment,
            self._timezones,
            self._bus,
            align=align,
            drift_threshold_ms=float(drift_threshold_ms),
        )
        self._timezones.scheduler = self._scheduler
        self._visibility = VisibilityMonitor(environment, self._scheduler) if visibility_aware else None
        self._disposed = False

        if self._visibility is not None:
            self._visibility.attach()
        self._scheduler.start()

        logger.info(
            "clock_started",
            timezone=timezone,
            align=align.value,
            visibility_aware=visibility_aware,
            drift_threshold_ms=drift_threshold_ms,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ClockSettings | None = None,
        *,
        environment: Environment | None = None,
        on_listener_error: Callable[[ListenerFailure], None] | None = None,
    ) -> TimeKeeper:
        """Build a clock from ``ClockSettings`` (env vars / .env when omitted)."""
        settings = settings or ClockSettings()
        return cls(
            timezone=settings.timezone,
            align=settings.align,
            visibility_aware=settings.visibility_aware,
            drift_threshold_ms=settings.drift_threshold_ms,
            environment=environment,
            on_listener_error=on_listener_error,
        )

    # === Subscriptions ===

    def on(self, kind: EventKind | str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``kind``; duplicates are ignored."""
        if self._disposed:
            logger.debug("subscribe_after_dispose_ignored", kind=str(kind))
            return
        self._bus.on(kind, listener)

    def off(self, kind: EventKind | str, listener: Listener) -> None:
        """Unsubscribe ``listener`` from ``kind``; absent listeners are ignored."""
        self._bus.off(kind, listener)

    # === Time ===

    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self._environment.current_instant() / 1000, tz=UTC)

    def zoned_now(self) -> datetime:
        """Current instant in the active timezone."""
        return self._environment.localize(
            self._environment.current_instant(), self._timezones.current
        )

    def format(self, pattern: TimeFormat | str) -> str:
        """Format ``zoned_now()`` with ``HH:mm``, ``HH:mm:ss`` or ``YYYY-MM-DDTHH:mm:ss``."""
        return format_instant(self.zoned_now(), pattern)

    # === Timezone ===

    def set_time_zone(
        self,
        timezone: str,
        mode: TransitionMode | str = TransitionMode.PRESERVE_WALL_CLOCK,
    ) -> TimezoneChangeEvent:
        """Switch the active timezone; see ``TimezoneManager.set_time_zone``."""
        return self._timezones.set_time_zone(timezone, mode)

    def get_time_zone(self) -> str:
        return self._timezones.get_time_zone()

    # === Lifecycle ===

    def dispose(self) -> None:
        """Cancel the pending timer, detach the resume signal, drop listeners."""
        if self._disposed:
            return
        self._disposed = True
        self._scheduler.stop()
        if self._visibility is not None:
            self._visibility.detach()
        self._bus.clear()
        logger.info("clock_disposed", ticks_accepted=self._scheduler.stats.ticks_accepted)

    def __enter__(self) -> TimeKeeper:
        return self

    def __exit__(self, *args: Any) -> None:
        self.dispose()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def align(self) -> AlignMode:
        return self._scheduler.align

    @property
    def drift_threshold_ms(self) -> float:
        return self._scheduler.state.drift_threshold_ms

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    @property
    def bus(self) -> EventBus:
        return self._bus

    def health(self) -> ClockHealth:
        """Snapshot of running state, counters and tick spacing."""
        running = self._scheduler.is_running
        pending = self._scheduler.has_pending_timer
        return ClockHealth(
            healthy=running and pending,
            running=running,
            timezone=self._timezones.current,
            align=self._scheduler.align,
            pending_timer=pending,
            visibility_attached=self._visibility is not None and self._visibility.attached,
            listener_count=self._bus.listener_count(),
            listener_failures=self._bus.failure_count,
            stats=self._scheduler.stats,
            interval=check_tick_interval_stability(
                list(self._scheduler.stats.recent_ticks_ms),
                expected_interval_ms=self._scheduler.unit_ms,
            ),
        )
