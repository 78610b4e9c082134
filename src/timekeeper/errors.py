"""
Structured error types for timekeeper.

Every error raised or reported by the clock carries a category, structured
context and an optional chained cause, so log lines and health reports can
classify failures without parsing messages.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     TimekeeperError                          │
        │              (category, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigurationError   ListenerFailure   EnvironmentUnavailable│
        │  (CONFIG)             (LISTENER)        (ENVIRONMENT)        │
        │                                                              │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Let a subscriber exception escape ``emit``
    ✅ DO: Wrap it in ``ListenerFailure`` and keep dispatching

    ❌ DON'T: Silently fall back to a default timezone on a bad identifier
    ✅ DO: Raise ``ConfigurationError`` and leave state unchanged

Usage:
    from timekeeper.errors import ConfigurationError

    raise ConfigurationError("Unknown timezone").with_context(
        key="timezone", value="Mars/Olympus"
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification and log routing."""

    CONFIG = "CONFIG"              # Bad timezone, align mode, threshold
    LISTENER = "LISTENER"          # Subscriber callback raised
    ENVIRONMENT = "ENVIRONMENT"    # Host timer / resume signal unavailable
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        key: Configuration key involved (``timezone``, ``align``...)
        value: Offending value, as given
        event_kind: Event kind being dispatched when the error occurred
        listener: Repr of the failing listener
        metadata: Anything else
    """

    key: str | None = None
    value: Any = None
    event_kind: str | None = None
    listener: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        result: dict[str, Any] = {}
        if self.key is not None:
            result["key"] = self.key
        if self.value is not None:
            result["value"] = self.value
        if self.event_kind is not None:
            result["event_kind"] = self.event_kind
        if self.listener is not None:
            result["listener"] = self.listener
        if self.metadata:
            result.update(self.metadata)
        return result


class TimekeeperError(Exception):
    """
    Base exception for all timekeeper errors.

    Subclasses set ``default_category``. Instances carry:
    - **category:** ErrorCategory for classification
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception (also set as ``__cause__``)

    Examples:
        >>> error = TimekeeperError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(key="align").context.key
        'align'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TimekeeperError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class ConfigurationError(TimekeeperError):
    """Invalid or unrecognized configuration value.

    Never recoverable by retrying; the caller must supply a valid value.
    """

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, key: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if key is not None:
            self.context.key = key
        if value is not None:
            self.context.value = value


class ListenerFailure(TimekeeperError):
    """A subscriber callback raised while an event was being dispatched."""

    default_category = ErrorCategory.LISTENER

    def __init__(self, event_kind: str, listener: Any, cause: Exception):
        super().__init__(
            f"Listener {listener!r} failed on {event_kind!r}: {cause}",
            cause=cause,
        )
        self.event_kind = event_kind
        self.listener = listener
        self.context.event_kind = event_kind
        self.context.listener = repr(listener)


class EnvironmentUnavailableError(TimekeeperError):
    """A host integration (timer, foreground-resume signal) is unavailable."""

    default_category = ErrorCategory.ENVIRONMENT


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TimekeeperError",
    "ConfigurationError",
    "ListenerFailure",
    "EnvironmentUnavailableError",
]
