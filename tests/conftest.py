"""
Shared pytest fixtures for timekeeper tests.

This module provides:
- A ManualEnvironment pinned to a known instant
- A clock factory that disposes every clock it built
- An event recorder for asserting on emitted events

Usage:
    def test_something(make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        recorder.listen(clock, "minute")
        env.advance(60_000)
        assert len(recorder.of("minute")) == 1
"""

import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

# Ensure timekeeper package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from timekeeper import TimeKeeper
from timekeeper.environment import ManualEnvironment, parse_ms

# 2025-01-01T12:00:00.000Z
NOON_UTC_MS = parse_ms("2025-01-01T12:00:00Z")


class EventRecorder:
    """Collects (kind, payload) pairs from clock listeners."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def listener(self, kind: str) -> Callable[[Any], None]:
        def record(payload: Any) -> None:
            self.events.append((kind, payload))

        return record

    def listen(self, clock: TimeKeeper, *kinds: str) -> None:
        for kind in kinds:
            clock.on(kind, self.listener(kind))

    def of(self, kind: str) -> list[Any]:
        return [payload for k, payload in self.events if k == kind]

    def kinds(self) -> list[str]:
        return [k for k, _ in self.events]

    def __len__(self) -> int:
        return len(self.events)


@pytest.fixture
def start_ms() -> float:
    return NOON_UTC_MS


@pytest.fixture
def env(start_ms: float) -> ManualEnvironment:
    return ManualEnvironment(start_ms=start_ms)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def make_clock(env: ManualEnvironment) -> Generator[Callable[..., TimeKeeper], None, None]:
    """Build clocks on the manual environment; disposed after the test."""
    clocks: list[TimeKeeper] = []

    def factory(**kwargs: Any) -> TimeKeeper:
        kwargs.setdefault("environment", env)
        clock = TimeKeeper(**kwargs)
        clocks.append(clock)
        return clock

    yield factory

    for clock in clocks:
        clock.dispose()
