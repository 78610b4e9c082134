"""Boundary-aligned scheduling for the clock service.

Manifesto:
    A clock that ticks "every 60 seconds" drifts away from the top of the
    minute within hours, and after a suspended period it fires stale ticks.
    Scheduling here always targets the next wall-clock boundary, checks
    every firing against that boundary, and realigns instead of trusting a
    late timer.

Modules
-------
drift       check_drift -- pure accept/realign decision
scheduler   TickScheduler -- single pending timer, aligned re-arming
visibility  VisibilityMonitor -- realign on foreground resume
"""

from __future__ import annotations

from .drift import DriftDecision, check_drift, check_tick_interval_stability
from .scheduler import MIN_DELAY_MS, SchedulerState, SchedulerStats, TickScheduler
from .visibility import VisibilityMonitor

__all__ = [
    "DriftDecision",
    "check_drift",
    "check_tick_interval_stability",
    "MIN_DELAY_MS",
    "SchedulerState",
    "SchedulerStats",
    "TickScheduler",
    "VisibilityMonitor",
]
