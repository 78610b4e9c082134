"""
Readiness primitives for startup sequences.

Generic awaitables used by startup/loading sequences that must wait for a
set of conditions without hanging on a slow one. They have no dependency
on the clock's event kinds.

    ready = await wait_until_ready(
        load_fonts(), warm_cache(),
        timeout_ms=3000,       # stop waiting after 3 s
        grace_ms=300,          # ...but absorb near-misses
        min_duration_ms=1600,  # keep the splash up at least this long
    )
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Final, TypeVar

from timekeeper.logging import get_logger

__all__ = ["TIMEOUT", "ReadinessResult", "delay", "race_with_timeout", "wait_until_ready"]

logger = get_logger(__name__)

T = TypeVar("T")


class _Timeout:
    def __repr__(self) -> str:
        return "TIMEOUT"


TIMEOUT: Final = _Timeout()


@dataclass
class ReadinessResult:
    """Outcome of ``wait_until_ready``."""

    ready: bool
    timed_out: bool
    elapsed_ms: float
    errors: list[BaseException] = field(default_factory=list)


async def delay(ms: float) -> None:
    """Sleep for ``ms`` milliseconds (negative values do not sleep)."""
    await asyncio.sleep(max(ms, 0) / 1000)


async def race_with_timeout(awaitable: Awaitable[T], ms: float) -> T | _Timeout:
    """Race ``awaitable`` against a timeout.

    The awaitable is NOT cancelled on timeout; pass an ``asyncio.Task`` to
    race the same work again later.

    Returns:
        The awaitable's result, or ``TIMEOUT``.
    """
    future = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({future}, timeout=max(ms, 0) / 1000)
    if future in done:
        return future.result()
    return TIMEOUT


async def wait_until_ready(
    *conditions: Awaitable[Any],
    timeout_ms: float = 3000,
    grace_ms: float = 300,
    min_duration_ms: float = 0,
) -> ReadinessResult:
    """Wait for every condition to settle, bounded by a timeout.

    A condition that raises counts as settled; its exception is reported
    in ``errors``. After a timeout the conditions get one extra
    ``grace_ms`` window; whatever is still pending afterwards is cancelled.
    The call never returns before ``min_duration_ms`` has elapsed.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()

    settled = asyncio.ensure_future(asyncio.gather(*conditions, return_exceptions=True))
    outcome = await race_with_timeout(settled, timeout_ms)
    timed_out = outcome is TIMEOUT
    if timed_out:
        outcome = await race_with_timeout(settled, grace_ms)

    if outcome is TIMEOUT:
        settled.cancel()
        logger.warning("readiness_timeout", timeout_ms=timeout_ms, grace_ms=grace_ms)
        errors: list[BaseException] = []
    else:
        errors = [r for r in outcome if isinstance(r, BaseException)]
        for error in errors:
            logger.warning("readiness_condition_failed", error=repr(error))

    remaining = min_duration_ms - (loop.time() - started) * 1000
    if remaining > 0:
        await delay(remaining)

    return ReadinessResult(
        ready=outcome is not TIMEOUT,
        timed_out=timed_out,
        elapsed_ms=(loop.time() - started) * 1000,
        errors=errors,
    )
