"""asyncio host environment.

This is the DEFAULT environment for a running process.

┌──────────────────────────────────────────────────────────────────────────────┐
│  ASYNCIO ENVIRONMENT                                                          │
│                                                                               │
│   current_instant()       time.time() * 1000                                 │
│   schedule_timer()        loop.call_later(delay_ms / 1000, callback)         │
│   cancel_timer()          asyncio.TimerHandle.cancel()                       │
│   on_foreground_resume()  loop.add_signal_handler(SIGCONT, ...)              │
│   localize()              zoneinfo                                           │
│                                                                               │
│  Why SIGCONT?                                                                 │
│  A process stopped with SIGSTOP / Ctrl-Z receives SIGCONT when it is         │
│  continued. Its loop timers were frozen meanwhile, so the schedule is        │
│  stale and must be realigned.                                                 │
│                                                                               │
│  Host sleep (laptop lid) is handled by drift detection instead: loop         │
│  timers run on the monotonic clock, which does not advance while the         │
│  machine sleeps, so the first firing after wake lands far from its           │
│  expected wall-clock boundary and is rejected.                               │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import signal
import time
from datetime import datetime

from timekeeper.environment.protocol import ResumeCallback, TimerCallback, Unsubscribe
from timekeeper.errors import EnvironmentUnavailableError
from timekeeper.logging import get_logger
from timekeeper.timezones import localize_instant

__all__ = ["AsyncioEnvironment"]

logger = get_logger(__name__)


class AsyncioEnvironment:
    """Environment backed by an asyncio event loop.

    Must be constructed from inside a running loop unless ``loop`` is given.

    Example:
        >>> async def main():
        ...     clock = TimeKeeper(environment=AsyncioEnvironment())
        ...     clock.on("minute", print)
        ...     await asyncio.sleep(120)
        ...     clock.dispose()
    """

    name = "asyncio"

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        resume_signal: int | None = None,
    ) -> None:
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise EnvironmentUnavailableError(
                    "AsyncioEnvironment needs a running event loop", cause=e
                ) from e
        self._loop = loop
        self._resume_signal = (
            resume_signal if resume_signal is not None else getattr(signal, "SIGCONT", None)
        )
        self._resume_callbacks: list[ResumeCallback] = []
        self._signal_installed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def current_instant(self) -> float:
        return time.time() * 1000

    def schedule_timer(self, delay_ms: float, callback: TimerCallback) -> asyncio.TimerHandle:
        if self._loop.is_closed():
            raise EnvironmentUnavailableError("Event loop is closed")
        return self._loop.call_later(delay_ms / 1000, callback)

    def cancel_timer(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()

    def on_foreground_resume(self, callback: ResumeCallback) -> Unsubscribe:
        if self._resume_signal is None:
            raise EnvironmentUnavailableError("Host has no SIGCONT signal")
        if not self._signal_installed:
            try:
                self._loop.add_signal_handler(self._resume_signal, self._dispatch_resume)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                raise EnvironmentUnavailableError(
                    "Cannot install foreground-resume signal handler", cause=e
                ) from e
            self._signal_installed = True
            logger.debug("resume_signal_installed", signal=int(self._resume_signal))

        self._resume_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._resume_callbacks:
                self._resume_callbacks.remove(callback)
            if not self._resume_callbacks:
                self._remove_signal_handler()

        return unsubscribe

    def localize(self, instant_ms: float, timezone_id: str) -> datetime:
        return localize_instant(instant_ms, timezone_id)

    def _dispatch_resume(self) -> None:
        for callback in list(self._resume_callbacks):
            callback()

    def _remove_signal_handler(self) -> None:
        if not self._signal_installed:
            return
        self._signal_installed = False
        if self._loop.is_closed():
            return
        self._loop.remove_signal_handler(self._resume_signal)
