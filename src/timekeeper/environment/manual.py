"""
Deterministic virtual-clock environment.

Manifesto:
    Boundary alignment, drift rejection and suspension recovery cannot be
    tested against real host timers without sleeping for minutes and
    hoping the machine is idle. ``ManualEnvironment`` replaces the host
    with a virtual clock that only moves when told to.

Time only advances through ``set_instant``/``advance``/``fire_next``.
Timers fire in due order (ties in arming order); a callback that arms a new
timer inside the advanced window sees it fire within the same ``advance``.

Example::

    env = ManualEnvironment(start_ms=parse_ms("2025-01-01T12:00:00Z"))
    clock = TimeKeeper(timezone="UTC", environment=env)
    env.advance(60_000)          # fires the 12:01:00 boundary
    env.fire_next(late_by_ms=5)  # fire the next timer 5 ms late
    env.resume()                 # raise the foreground-resume signal
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime

from timekeeper.environment.protocol import ResumeCallback, TimerCallback, Unsubscribe
from timekeeper.errors import EnvironmentUnavailableError
from timekeeper.timezones import localize_instant

__all__ = ["ManualEnvironment", "ManualTimer", "parse_ms"]


def parse_ms(value: str) -> float:
    """Parse an ISO-8601 timestamp into epoch milliseconds (naive = UTC)."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp() * 1000


@dataclass(eq=False)
class ManualTimer:
    """A timer armed on the virtual clock."""

    id: int
    due_ms: float
    delay_ms: float
    callback: TimerCallback = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    def __hash__(self) -> int:
        return hash(self.id)


class ManualEnvironment:
    """Virtual clock implementing the ``Environment`` protocol.

    Args:
        start_ms: Initial instant, epoch milliseconds
        fail_timers: Make ``schedule_timer`` raise EnvironmentUnavailableError
        fail_resume: Make ``on_foreground_resume`` raise EnvironmentUnavailableError
    """

    def __init__(
        self,
        start_ms: float = 0.0,
        *,
        fail_timers: bool = False,
        fail_resume: bool = False,
    ) -> None:
        self._now = float(start_ms)
        self._timers: list[ManualTimer] = []
        self._ids = itertools.count(1)
        self._resume_callbacks: list[ResumeCallback] = []
        self.fail_timers = fail_timers
        self.fail_resume = fail_resume
        self.scheduled_count = 0
        self.cancelled_count = 0

    # === Environment protocol ===

    def current_instant(self) -> float:
        return self._now

    def schedule_timer(self, delay_ms: float, callback: TimerCallback) -> ManualTimer:
        if self.fail_timers:
            raise EnvironmentUnavailableError("Timer scheduling unavailable")
        timer = ManualTimer(
            id=next(self._ids),
            due_ms=self._now + delay_ms,
            delay_ms=delay_ms,
            callback=callback,
        )
        self._timers.append(timer)
        self.scheduled_count += 1
        return timer

    def cancel_timer(self, handle: ManualTimer) -> None:
        if handle in self._timers:
            self._timers.remove(handle)
            handle.cancelled = True
            self.cancelled_count += 1

    def on_foreground_resume(self, callback: ResumeCallback) -> Unsubscribe:
        if self.fail_resume:
            raise EnvironmentUnavailableError("Foreground-resume signal unavailable")
        self._resume_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._resume_callbacks:
                self._resume_callbacks.remove(callback)

        return unsubscribe

    def localize(self, instant_ms: float, timezone_id: str) -> datetime:
        return localize_instant(instant_ms, timezone_id)

    # === Virtual clock control ===

    def set_instant(self, instant_ms: float) -> None:
        """Move the clock without firing anything (e.g. a suspended host)."""
        self._now = float(instant_ms)

    def advance(self, ms: float) -> int:
        """Advance by ``ms``, firing every timer that falls due on the way.

        Returns:
            Number of timers fired.
        """
        return self.advance_to(self._now + ms)

    def advance_to(self, instant_ms: float) -> int:
        fired = 0
        while True:
            due = [t for t in self._timers if t.due_ms <= instant_ms]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.id))
            self._now = max(self._now, timer.due_ms)
            self._fire(timer)
            fired += 1
        self._now = max(self._now, float(instant_ms))
        return fired

    def fire_next(self, *, at_ms: float | None = None, late_by_ms: float = 0.0) -> ManualTimer | None:
        """Fire the earliest live timer now.

        Args:
            at_ms: Instant to fire at (overrides the timer's due time)
            late_by_ms: Fire this long after the timer's due time

        Returns:
            The fired timer, or None if nothing is armed.
        """
        if not self._timers:
            return None
        timer = min(self._timers, key=lambda t: (t.due_ms, t.id))
        self._now = at_ms if at_ms is not None else timer.due_ms + late_by_ms
        self._fire(timer)
        return timer

    def resume(self) -> None:
        """Raise the foreground-resume signal."""
        for callback in list(self._resume_callbacks):
            callback()

    # === Introspection ===

    @property
    def live_timers(self) -> list[ManualTimer]:
        return list(self._timers)

    @property
    def pending_delays(self) -> list[float]:
        return [t.delay_ms for t in self._timers]

    @property
    def resume_subscriber_count(self) -> int:
        return len(self._resume_callbacks)

    def _fire(self, timer: ManualTimer) -> None:
        self._timers.remove(timer)
        timer.fired = True
        timer.callback()
