"""
Synchronous in-process event bus.

Manifesto:
    Clock subscribers must see events in a defined order, immediately, and
    a misbehaving subscriber must never break the clock or starve the
    subscribers registered after it.

Semantics:
    - One listener set per event kind, kept in insertion order.
    - Registration is identity-deduplicated: adding the same callable twice
      for one kind leaves a single registration.
    - ``emit`` iterates over a snapshot taken at emit time, so listeners may
      call ``on``/``off`` from inside a callback without affecting the
      dispatch in progress.
    - Each listener call is isolated; failures become ``ListenerFailure``
      records that are logged, counted and handed to ``on_error``.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from enum import Enum
from typing import Any

from timekeeper.errors import ListenerFailure
from timekeeper.logging import get_logger

__all__ = ["EventBus"]

logger = get_logger(__name__)

ErrorHook = Callable[[ListenerFailure], None]


def _key(kind: str) -> str:
    return kind.value if isinstance(kind, Enum) else kind


def _identity(listener: Callable[[Any], None]) -> Hashable:
    # bound methods are rebuilt on every attribute access; key them by owner + function
    owner = getattr(listener, "__self__", None)
    if owner is None:
        return id(listener)
    func = getattr(listener, "__func__", None)
    return (id(owner), id(func) if func is not None else listener.__name__)


class EventBus:
    """Per-kind listener registry with synchronous, ordered dispatch.

    Example::

        bus = EventBus()
        bus.on("minute", print)
        bus.on("minute", print)   # no-op, already registered
        bus.emit("minute", "12:01")
        # Output: 12:01
    """

    def __init__(self, on_error: ErrorHook | None = None) -> None:
        # identity key -> listener; dict preserves insertion order
        self._listeners: dict[str, dict[Hashable, Callable[[Any], None]]] = {}
        self._on_error = on_error
        self._failure_count = 0

    def on(self, kind: str, listener: Callable[[Any], None]) -> None:
        """Register ``listener`` for ``kind``. Re-registering is a no-op."""
        self._listeners.setdefault(_key(kind), {}).setdefault(_identity(listener), listener)

    def off(self, kind: str, listener: Callable[[Any], None]) -> None:
        """Remove ``listener`` from ``kind`` if present."""
        listeners = self._listeners.get(_key(kind))
        if listeners is None:
            return
        listeners.pop(_identity(listener), None)
        if not listeners:
            del self._listeners[_key(kind)]

    def emit(self, kind: str, payload: Any = None) -> int:
        """Dispatch ``payload`` to every listener registered for ``kind``.

        Returns:
            Number of listeners that completed without raising.
        """
        snapshot = list(self._listeners.get(_key(kind), {}).values())
        delivered = 0
        for listener in snapshot:
            try:
                listener(payload)
            except Exception as e:
                self._record_failure(ListenerFailure(_key(kind), listener, e))
            else:
                delivered += 1
        return delivered

    def clear(self) -> None:
        """Drop every listener for every kind."""
        self._listeners.clear()

    def listener_count(self, kind: str | None = None) -> int:
        """Number of registrations for ``kind``, or across all kinds."""
        if kind is not None:
            return len(self._listeners.get(_key(kind), ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def has_listener(self, kind: str, listener: Callable[[Any], None]) -> bool:
        return _identity(listener) in self._listeners.get(_key(kind), ())

    @property
    def failure_count(self) -> int:
        """Number of listener failures isolated since construction."""
        return self._failure_count

    def _record_failure(self, failure: ListenerFailure) -> None:
        self._failure_count += 1
        logger.warning("listener_failed", **failure.to_dict())
        if self._on_error is None:
            return
        try:
            self._on_error(failure)
        except Exception:
            logger.exception("listener_error_hook_failed", event_kind=failure.event_kind)
