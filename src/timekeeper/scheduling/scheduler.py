"""Boundary-aligned tick scheduler.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TICK SCHEDULER                                                               │
│                                                                               │
│   start() ──► schedule_next_tick() ──► env.schedule_timer(delay, handle_tick)│
│                      ▲                               │                        │
│                      │                               ▼                        │
│                      │                        handle_tick()                   │
│                      │                               │                        │
│                      │          first tick? ── yes ──┤                        │
│                      │                               │ no                     │
│                      │                     check_drift(actual, expected)      │
│                      │                        │               │               │
│                      │                     accept          reject             │
│                      │                        │               │               │
│                      │      emit minute|second + hour     restart()           │
│                      └────────────────────────┘               │               │
│                                                   cancel + clear baseline    │
│                                                   + schedule_next_tick()     │
│                                                                               │
│  Invariant: at most one pending timer handle. Every path that arms a timer  │
│  cancels the previous handle first.                                          │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from timekeeper.enums import ALIGN_EVENT_KIND, AlignMode, EventKind
from timekeeper.environment.protocol import Environment, TimerHandle
from timekeeper.errors import EnvironmentUnavailableError
from timekeeper.events import EventBus, TickEvent
from timekeeper.logging import get_logger
from timekeeper.scheduling.drift import check_drift

if TYPE_CHECKING:
    from timekeeper.timezones import TimezoneManager

__all__ = ["TickScheduler", "SchedulerState", "SchedulerStats", "MIN_DELAY_MS"]

logger = get_logger(__name__)

# Floor for any armed delay; a zero delay would re-fire on the same boundary
MIN_DELAY_MS = 1.0

UNALIGNED_INTERVAL_MS = 1_000.0


@dataclass
class SchedulerState:
    """Mutable scheduling state of one clock."""

    drift_threshold_ms: float
    last_accepted_tick_ms: float | None = None
    pending_timer_handle: TimerHandle | None = None


@dataclass
class SchedulerStats:
    """Counters for the health report."""

    ticks_accepted: int = 0
    ticks_rejected: int = 0
    restarts: int = 0
    timers_armed: int = 0
    last_tick_ms: float | None = None
    last_drift_ms: float | None = None
    last_delay_ms: float | None = None
    last_error: str | None = None
    recent_ticks_ms: deque[float] = field(default_factory=lambda: deque(maxlen=32))

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticks_accepted": self.ticks_accepted,
            "ticks_rejected": self.ticks_rejected,
            "restarts": self.restarts,
            "timers_armed": self.timers_armed,
            "last_tick_ms": self.last_tick_ms,
            "last_drift_ms": self.last_drift_ms,
            "last_delay_ms": self.last_delay_ms,
            "last_error": self.last_error,
        }


class TickScheduler:
    """Arms one timer at a time on the next aligned wall-clock boundary.

    Delays are computed against the active zone's wall-clock milliseconds,
    so realigning after a timezone change snaps to that zone's boundaries.
    A firing that lands slightly before its boundary (host timers run on a
    monotonic clock, the instant is read from the wall clock) is stamped
    with that boundary and the next timer targets the boundary after it.

    Example:
        >>> scheduler = TickScheduler(env, timezones, bus, align=AlignMode.SECOND)
        >>> scheduler.start()
        >>> scheduler.has_pending_timer
        True
    """

    def __init__(
        self,
        environment: Environment,
        timezones: TimezoneManager,
        bus: EventBus,
        align: AlignMode = AlignMode.MINUTE,
        drift_threshold_ms: float = 250.0,
    ) -> None:
        self.environment = environment
        self.timezones = timezones
        self.bus = bus
        self.align = AlignMode(align)
        self.state = SchedulerState(drift_threshold_ms=drift_threshold_ms)
        self.stats = SchedulerStats()
        self._running = False

    # === Lifecycle ===

    def start(self) -> None:
        """Arm the first aligned timer."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self._running = True
        self.schedule_next_tick()

    def stop(self) -> None:
        """Cancel the pending timer; no tick is handled afterwards."""
        self._running = False
        self._cancel_pending()

    def restart(self) -> None:
        """Cancel any pending timer and realign from the current instant.

        Clears the drift baseline: the first firing after a realignment is
        accepted unconditionally.
        """
        if not self._running:
            return
        self._cancel_pending()
        self.state.last_accepted_tick_ms = None
        self.stats.restarts += 1
        logger.debug("scheduler_restart", restarts=self.stats.restarts)
        self.schedule_next_tick()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_pending_timer(self) -> bool:
        return self.state.pending_timer_handle is not None

    @property
    def unit_ms(self) -> float:
        return float(self.align.unit_ms)

    # === Scheduling ===

    def compute_delay(self, now_ms: float) -> float:
        """Milliseconds from ``now_ms`` to the next boundary (>= MIN_DELAY_MS)."""
        if self.align is AlignMode.NONE:
            return UNALIGNED_INTERVAL_MS
        return max(self._until_boundary(now_ms), MIN_DELAY_MS)

    def snap_to_boundary(self, actual_ms: float) -> float:
        """Boundary instant a firing stands for.

        A firing up to ``drift_threshold_ms`` before a boundary is treated
        as that boundary; any other firing stands for itself.
        """
        if self.align is AlignMode.NONE:
            return actual_ms
        ahead = self._until_boundary(actual_ms)
        if ahead < self.unit_ms and ahead <= self.state.drift_threshold_ms:
            return actual_ms + ahead
        return actual_ms

    def _until_boundary(self, instant_ms: float) -> float:
        # in (0, unit]; computed on the active zone's wall clock
        unit = self.unit_ms
        zoned = self.environment.localize(instant_ms, self.timezones.current)
        offset = zoned.utcoffset()
        offset_ms = offset.total_seconds() * 1000 if offset is not None else 0.0
        return unit - ((instant_ms + offset_ms) % unit)

    def schedule_next_tick(self, after_ms: float | None = None) -> None:
        """Arm the timer for the next boundary, replacing any pending one.

        Args:
            after_ms: Boundary already handled; the timer targets the
                boundary after it even if the clock has not reached it yet.
        """
        if not self._running:
            return
        self._cancel_pending()

        now = self.environment.current_instant()
        if after_ms is not None and after_ms > now:
            delay = (after_ms - now) + self.compute_delay(after_ms)
        else:
            delay = self.compute_delay(now)
        try:
            handle = self.environment.schedule_timer(delay, self.handle_tick)
        except EnvironmentUnavailableError as e:
            self.stats.last_error = str(e)
            logger.error("timer_unavailable", **e.to_dict())
            return

        self.state.pending_timer_handle = handle
        self.stats.timers_armed += 1
        self.stats.last_delay_ms = delay
        logger.debug("timer_armed", delay_ms=delay, align=self.align.value)

    def handle_tick(self) -> None:
        """Timer callback: drift check, then emit and re-arm."""
        if not self._running:
            return
        self.state.pending_timer_handle = None

        actual = self.environment.current_instant()
        last = self.state.last_accepted_tick_ms
        if last is not None:
            decision = check_drift(actual, last + self.unit_ms, self.state.drift_threshold_ms)
            self.stats.last_drift_ms = decision.drift_ms
            if not decision.accept:
                self.stats.ticks_rejected += 1
                logger.info("tick_rejected", **decision.to_dict())
                self.restart()
                return

        tick = self.snap_to_boundary(actual)
        self.state.last_accepted_tick_ms = tick
        self.stats.ticks_accepted += 1
        self.stats.last_tick_ms = tick
        self.stats.recent_ticks_ms.append(tick)

        zoned = self.environment.localize(tick, self.timezones.current)
        logger.debug(
            "tick_accepted", align=self.align.value, zoned=zoned.isoformat(), early_ms=tick - actual
        )

        kind = ALIGN_EVENT_KIND[self.align]
        if kind is not None:
            self.bus.emit(kind, TickEvent(kind=kind, zoned_instant=zoned, instant_ms=tick))
        self.bus.emit(
            EventKind.HOUR, TickEvent(kind=EventKind.HOUR, zoned_instant=zoned, instant_ms=tick)
        )

        self.schedule_next_tick(after_ms=tick)

    def _cancel_pending(self) -> None:
        handle = self.state.pending_timer_handle
        if handle is None:
            return
        self.state.pending_timer_handle = None
        self.environment.cancel_timer(handle)
