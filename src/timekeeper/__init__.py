"""
timekeeper - a process-wide clock that ticks on wall-clock boundaries.

Emits ``second``/``minute``/``hour`` events aligned to the top of the
second or minute in a reconfigurable timezone, detects and corrects timer
drift, and realigns after the host resumes from suspension.

Quick start::

    import asyncio
    from timekeeper import TimeKeeper

    async def main():
        with TimeKeeper(timezone="UTC", align="minute") as clock:
            clock.on("minute", lambda event: print(clock.format("HH:mm")))
            await asyncio.sleep(180)

    asyncio.run(main())
"""

from __future__ import annotations

from timekeeper.enums import AlignMode, EventKind, TransitionMode
from timekeeper.environment import AsyncioEnvironment, Environment, ManualEnvironment
from timekeeper.errors import (
    ConfigurationError,
    EnvironmentUnavailableError,
    ListenerFailure,
    TimekeeperError,
)
from timekeeper.events import EventBus, TickEvent, TimezoneChangeEvent
from timekeeper.formatting import TimeFormat, format_instant
from timekeeper.service import ClockHealth, TimeKeeper
from timekeeper.settings import ClockSettings

__version__ = "0.3.0"

__all__ = [
    "TimeKeeper",
    "ClockHealth",
    "ClockSettings",
    "AlignMode",
    "EventKind",
    "TransitionMode",
    "TickEvent",
    "TimezoneChangeEvent",
    "EventBus",
    "Environment",
    "AsyncioEnvironment",
    "ManualEnvironment",
    "TimeFormat",
    "format_instant",
    "TimekeeperError",
    "ConfigurationError",
    "ListenerFailure",
    "EnvironmentUnavailableError",
]
