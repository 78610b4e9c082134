"""Environment capability protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  ENVIRONMENT CAPABILITY                                                       │
│                                                                               │
│  Everything the clock needs from its host, and nothing more:                 │
│                                                                               │
│   ┌─────────────────┐  current_instant()      ┌─────────────────┐            │
│   │  TickScheduler  │ ──────────────────────► │  Environment    │            │
│   │                 │  schedule_timer()       │                 │            │
│   │                 │  cancel_timer()         │  - Asyncio      │            │
│   │                 │  localize()             │  - Manual       │            │
│   └─────────────────┘                         │    (virtual)    │            │
│   ┌─────────────────┐  on_foreground_resume() │                 │            │
│   │ VisibilityMon.  │ ──────────────────────► │                 │            │
│   └─────────────────┘                         └─────────────────┘            │
│                                                                               │
│  Instants are float milliseconds since the Unix epoch.                       │
│  Integration failures are raised as EnvironmentUnavailableError.             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from datetime import datetime
from typing import Protocol, runtime_checkable

TimerCallback = Callable[[], None]
ResumeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]

# Opaque to the core; only ever handed back to cancel_timer()
TimerHandle = Hashable


@runtime_checkable
class Environment(Protocol):
    """Host capability consumed by the clock service.

    Implementations:
        - AsyncioEnvironment: asyncio loop timers + SIGCONT resume signal
        - ManualEnvironment: deterministic virtual clock for tests/simulation
    """

    def current_instant(self) -> float:
        """Current instant, milliseconds since the Unix epoch."""
        ...

    def schedule_timer(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        """Arm a single-shot timer firing ``callback`` after ``delay_ms``."""
        ...

    def cancel_timer(self, handle: TimerHandle) -> None:
        """Cancel a timer. Cancelling a fired or cancelled timer is a no-op."""
        ...

    def on_foreground_resume(self, callback: ResumeCallback) -> Unsubscribe:
        """Subscribe to the host's foreground-resume signal.

        Returns:
            Callable that detaches ``callback``.

        Raises:
            EnvironmentUnavailableError: the host has no such signal
        """
        ...

    def localize(self, instant_ms: float, timezone_id: str) -> datetime:
        """Render ``instant_ms`` as an aware datetime in ``timezone_id``."""
        ...
