"""Clock events and the synchronous event bus.

Why This Package Exists
-----------------------
Subscribers (UI widgets, alarm checkers, log shippers) need to react to
wall-clock boundaries without knowing how the clock schedules timers.
The ``EventBus`` decouples the scheduler (producer) from subscribers
(consumers), and the payload dataclasses here define exactly what a
subscriber receives.

Usage::

    from timekeeper.events import EventBus, TickEvent

    bus = EventBus()

    def on_minute(event: TickEvent) -> None:
        print(event.zoned_instant.strftime("%H:%M"))

    bus.on("minute", on_minute)

Modules
-------
bus     EventBus -- per-kind listener sets, snapshot dispatch
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from timekeeper.enums import EventKind, TransitionMode

__all__ = [
    "TickEvent",
    "TimezoneChangeEvent",
    "Listener",
    "EventBus",
]


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TickEvent:
    """A boundary tick accepted by the scheduler.

    Attributes:
        kind: ``second``, ``minute`` or ``hour``
        zoned_instant: Wall-clock timestamp in the active timezone
        instant_ms: Firing instant in epoch milliseconds, snapped forward onto
            the boundary when the timer fired slightly early
    """

    kind: EventKind
    zoned_instant: datetime
    instant_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "zoned_instant": self.zoned_instant.isoformat(),
            "instant_ms": self.instant_ms,
        }


@dataclass(frozen=True)
class TimezoneChangeEvent:
    """Emitted exactly once per successful timezone change."""

    from_tz: str
    to_tz: str
    mode: TransitionMode

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_tz, "to": self.to_tz, "mode": self.mode.value}


# ── Type Aliases ─────────────────────────────────────────────────────────

Listener = Callable[[Any], None]


from timekeeper.events.bus import EventBus  # noqa: E402
