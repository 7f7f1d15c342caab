"""
Structured logging for content-reveal playback sessions.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.name)


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name, e.g. "session_end".
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)
    logger_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """Event-based structured logger.

    Emits one JSON object (or one human-readable line) per event, and
    forwards every record to the stdlib logger of the same name so the
    host application's handlers still see it.

    Example:
        log = StructuredLogger("content_reveal")
        log.session_start(session_id="s1", events=42)

        # Bind context carried by every record
        session_log = log.bind(session_id="s1")
        session_log.speed_change(multiplier=4.0, instant=False)
    """

    def __init__(
        self,
        name: str = "content_reveal",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ):
        """Initialize the logger.

        Args:
            name: Logger name.
            level: Minimum log level.
            output: Output stream (default: stderr).
            json_format: Output as JSON (vs. human-readable).
        """
        self.name = name
        self._level = level
        self._output = output or sys.stderr
        self._json_format = json_format
        self._context: dict[str, Any] = {}
        self._std = logging.getLogger(name)

    def bind(self, **context: Any) -> StructuredLogger:
        """Create a new logger with bound context."""
        bound = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
        )
        bound._context = {**self._context, **context}
        return bound

    def _log(self, level: LogLevel, event: str, message: str = "", **data: Any) -> None:
        if level.numeric < self._level.numeric:
            return

        record = LogRecord(
            level=level.value,
            event=event,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
        )
        self._emit(record)
        self._std.log(level.numeric, "%s %s", event, message, extra={"structured": record.data})

    def _emit(self, record: LogRecord) -> None:
        line = record.to_json() if self._json_format else self._format_human(record)
        print(line, file=self._output)

    def _format_human(self, record: LogRecord) -> str:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.timestamp))
        parts = [f"[{timestamp}]", f"[{record.level.upper()}]", f"[{record.event}]"]
        if record.message:
            parts.append(record.message)
        if record.data:
            parts.append("(" + " ".join(f"{k}={v}" for k, v in record.data.items()) + ")")
        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.DEBUG, event, message, **data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.INFO, event, message, **data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.WARNING, event, message, **data)

    def error(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.ERROR, event, message, **data)

    # Convenience methods for playback events

    def session_start(self, session_id: str, events: int, **extra: Any) -> None:
        self.info(
            "session_start",
            f"Streaming {events} events",
            session_id=session_id,
            events=events,
            **extra,
        )

    def session_end(
        self,
        session_id: str,
        status: str,
        reason: str,
        applied: int,
        total: int,
        duration_ms: float,
        **extra: Any,
    ) -> None:
        self.info(
            "session_end",
            f"Session {status} ({reason}) after {applied}/{total} events",
            session_id=session_id,
            status=status,
            reason=reason,
            applied=applied,
            total=total,
            duration_ms=round(duration_ms, 1),
            **extra,
        )

    def speed_change(self, session_id: str, multiplier: float, instant: bool, **extra: Any) -> None:
        self.debug(
            "speed_change",
            "Instant" if instant else f"Faster (x{multiplier:g})",
            session_id=session_id,
            multiplier=multiplier,
            instant=instant,
            **extra,
        )

    def cleanup_failure(self, resource: str, error: Exception, **extra: Any) -> None:
        self.warning(
            "cleanup_failure",
            str(error),
            resource=resource,
            error_type=type(error).__name__,
            **extra,
        )


_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Configure the global structured logger."""
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level)

    _global_logger = StructuredLogger(
        name="content_reveal",
        level=level,
        output=output,
        json_format=json_format,
    )
    return _global_logger


def get_logger(name: str = "content_reveal") -> StructuredLogger:
    """Get the global structured logger, creating it on first use."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name)
    return _global_logger
