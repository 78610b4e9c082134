"""Clock settings.

Configuration is explicit, validated and environment-driven. Every field
can be set through a ``TIMEKEEPER_``-prefixed environment variable or a
``.env`` file:

    TIMEKEEPER_TIMEZONE=UTC
    TIMEKEEPER_ALIGN=second
    TIMEKEEPER_VISIBILITY_AWARE=false
    TIMEKEEPER_DRIFT_THRESHOLD_MS=500
    TIMEKEEPER_LOG_LEVEL=DEBUG

Examples:
    >>> from timekeeper.settings import ClockSettings
    >>> settings = ClockSettings(timezone="UTC")
    >>> clock = TimeKeeper.from_settings(settings)
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from timekeeper.enums import AlignMode
from timekeeper.errors import ConfigurationError
from timekeeper.timezones import resolve_zone

DEFAULT_TIMEZONE = "Asia/Seoul"
DEFAULT_DRIFT_THRESHOLD_MS = 250.0


class ClockSettings(BaseSettings):
    """Construction options for a ``TimeKeeper``.

    Fields
    ──────
    timezone            : IANA identifier of the initial zone
    align               : none | second | minute
    visibility_aware    : Realign on foreground resume
    drift_threshold_ms  : Max |actual - expected| accepted for a tick
    log_level           : structlog level
    json_logs           : JSON log output (None = auto-detect from tty)
    """

    model_config = SettingsConfigDict(
        env_prefix="TIMEKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timezone: str = DEFAULT_TIMEZONE
    align: AlignMode = AlignMode.MINUTE
    visibility_aware: bool = True
    drift_threshold_ms: float = Field(default=DEFAULT_DRIFT_THRESHOLD_MS, ge=0)

    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            resolve_zone(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from e
        return value
