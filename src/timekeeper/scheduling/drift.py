"""Drift detection for boundary ticks.

┌──────────────────────────────────────────────────────────────────────────────┐
│  DRIFT DECISION                                                               │
│                                                                               │
│     expected = last_accepted + unit                                          │
│     drift    = actual - expected                                             │
│                                                                               │
│     |drift| <= threshold  →  ACCEPT   (emit, arm next boundary)              │
│     |drift| >  threshold  →  REJECT   (emit nothing, restart schedule)       │
│                                                                               │
│   ───────┬──────────────┬──────────────┬──────────────►  time               │
│          │◄─ threshold ─┤─ threshold ─►│                                     │
│                      expected                                                 │
│                                                                               │
│  Host timers routinely fire a little late (loop congestion, throttling);     │
│  those firings are accepted. A firing far from its boundary (suspended      │
│  process, sleeping host) would carry a stale or mistimed event, so it is    │
│  dropped and the schedule is realigned from scratch.                         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

__all__ = ["DriftDecision", "check_drift", "check_tick_interval_stability"]


@dataclass(frozen=True)
class DriftDecision:
    """Outcome of comparing an observed tick against its boundary."""

    accept: bool
    actual_ms: float
    expected_ms: float
    threshold_ms: float

    @property
    def drift_ms(self) -> float:
        """Signed drift; positive when the tick fired late."""
        return self.actual_ms - self.expected_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "accept": self.accept,
            "drift_ms": self.drift_ms,
            "threshold_ms": self.threshold_ms,
        }


def check_drift(actual_ms: float, expected_ms: float, threshold_ms: float) -> DriftDecision:
    """Accept iff ``|actual - expected| <= threshold``. Pure."""
    return DriftDecision(
        accept=abs(actual_ms - expected_ms) <= threshold_ms,
        actual_ms=actual_ms,
        expected_ms=expected_ms,
        threshold_ms=threshold_ms,
    )


def check_tick_interval_stability(
    tick_instants_ms: Sequence[float],
    expected_interval_ms: float,
    tolerance: float = 0.5,
) -> dict[str, Any]:
    """Analyze spacing between consecutive accepted ticks.

    Args:
        tick_instants_ms: Accepted tick instants, oldest first
        expected_interval_ms: Nominal spacing (the align unit)
        tolerance: Acceptable deviation as fraction (0.5 = 50%)

    Returns:
        Analysis result with jitter and stability metrics
    """
    if len(tick_instants_ms) < 2:
        return {
            "stable": True,
            "samples": len(tick_instants_ms),
            "message": "Insufficient data",
        }

    intervals = [b - a for a, b in zip(tick_instants_ms, tick_instants_ms[1:])]

    avg = sum(intervals) / len(intervals)
    variance = sum((x - avg) ** 2 for x in intervals) / len(intervals)
    std_dev = variance ** 0.5

    max_deviation = max(abs(x - expected_interval_ms) for x in intervals)

    return {
        "stable": max_deviation <= expected_interval_ms * tolerance,
        "samples": len(intervals),
        "avg_interval_ms": avg,
        "expected_interval_ms": expected_interval_ms,
        "std_dev_ms": std_dev,
        "jitter_pct": (std_dev / expected_interval_ms) * 100,
        "max_deviation_ms": max_deviation,
    }
