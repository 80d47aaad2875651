"""
Log record model shipped by the JSON HTTP sink.

Records are produced by the host logging framework and handed to the sink
read-only. The sink buffers references to them and serializes them at send
time; it never mutates a record.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum


class Level(IntEnum):
    """Log levels ordered by numeric severity (aligned with stdlib logging)."""

    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_name(cls, name: str) -> "Level":
        """
        Look up a level by name.

        Case-insensitive; accepts WARN and FATAL as aliases.

        Raises:
            ValueError: if the name is not a known level
        """
        key = name.strip().upper()
        key = _LEVEL_ALIASES.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None

    @classmethod
    def from_logging(cls, levelno: int) -> "Level":
        """Map a stdlib logging level number to the highest level not above it."""
        for level in sorted(cls, reverse=True):
            if levelno >= level:
                return level
        return cls.TRACE


_LEVEL_ALIASES = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
}


@dataclass(frozen=True)
class LogRecord:
    """A single structured log event."""

    level: Level
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    logger_name: str | None = None
    tag: str | None = None
    class_name: str | None = None
    method_name: str | None = None
    line_number: int | None = None
    error: BaseException | None = None
    stack_trace: str | None = None
    context: Mapping[str, str] | None = None

    @property
    def is_error(self) -> bool:
        """True for ERROR and anything more severe."""
        return self.level >= Level.ERROR
