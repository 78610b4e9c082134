"""Foreground-resume monitoring.

A suspended or throttled host stops servicing timers; when it comes back
the pending timer is stale. ``VisibilityMonitor`` subscribes once to the
environment's foreground-resume signal and realigns the scheduler on every
resume, without trusting whatever timer is still pending.
"""

from __future__ import annotations

from timekeeper.environment.protocol import Environment, Unsubscribe
from timekeeper.errors import EnvironmentUnavailableError
from timekeeper.logging import get_logger
from timekeeper.scheduling.scheduler import TickScheduler

__all__ = ["VisibilityMonitor"]

logger = get_logger(__name__)


class VisibilityMonitor:
    """Restarts ``scheduler`` whenever the host resumes."""

    def __init__(self, environment: Environment, scheduler: TickScheduler) -> None:
        self.environment = environment
        self.scheduler = scheduler
        self.resume_count = 0
        self._unsubscribe: Unsubscribe | None = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> bool:
        """Subscribe to the resume signal.

        Returns:
            False when the host has no usable signal; the clock then runs
            on drift detection alone.
        """
        if self._unsubscribe is not None:
            return True
        try:
            self._unsubscribe = self.environment.on_foreground_resume(self._on_resume)
        except EnvironmentUnavailableError as e:
            logger.warning("visibility_unavailable", **e.to_dict())
            return False
        return True

    def detach(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def _on_resume(self) -> None:
        self.resume_count += 1
        logger.info("visibility_resume", resume_count=self.resume_count)
        self.scheduler.restart()
