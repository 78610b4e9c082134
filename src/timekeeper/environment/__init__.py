"""Host environment capability for the clock service.

The clock never touches host timers, signals or locale data directly; it
talks to an ``Environment``. Production code runs on ``AsyncioEnvironment``,
tests and simulations on ``ManualEnvironment``.

Modules
-------
protocol      Environment protocol and callback/handle aliases
asyncio_env   AsyncioEnvironment -- loop timers, SIGCONT resume signal
manual        ManualEnvironment -- deterministic virtual clock
"""

from __future__ import annotations

from .asyncio_env import AsyncioEnvironment
from .manual import ManualEnvironment, ManualTimer, parse_ms
from .protocol import Environment, TimerHandle

__all__ = [
    "Environment",
    "TimerHandle",
    "AsyncioEnvironment",
    "ManualEnvironment",
    "ManualTimer",
    "parse_ms",
]
