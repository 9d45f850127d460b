# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Structured logging for grafter.

Built on Python's standard logging module: modules log through
``logging.getLogger(__name__)`` and this module supplies the formatter,
context binding and handler setup.
"""

from __future__ import annotations

import contextlib
import datetime
import enum
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TextIO

from grafter.logging.config import LoggingSettings
from grafter.logging.level import LogLevel

if TYPE_CHECKING:
    from collections.abc import Iterator

ROOT_LOGGER_NAME = "grafter"

# Context variable for storing log context data
_log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "grafter_log_context", default=None
)

_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def current_log_context() -> dict[str, Any]:
    """Return a copy of the context bound in the current thread or task."""
    return dict(_log_context.get() or {})


@contextlib.contextmanager
def log_context(**values: Any) -> Iterator[dict[str, Any]]:
    """Bind key/value pairs to every record logged inside the block.

    Example:
        ```python
        with log_context(scope_id="abc"):
            logger.debug("resolving")  # rendered with scope_id=abc
        ```
    """
    merged = {**current_log_context(), **values}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


class StructuredFormatter(logging.Formatter):
    """Formatter that supports structured logging with context data."""

    def __init__(
        self,
        json_format: bool = False,
        include_timestamp: bool = True,
        include_level: bool = True,
    ) -> None:
        """Initialize a structured formatter.

        Args:
            json_format: Whether to format logs as JSON
            include_timestamp: Whether to include timestamps in logs
            include_level: Whether to include log level in logs
        """
        self.json_format = json_format
        self.include_timestamp = include_timestamp
        self.include_level = include_level

        fmt = "%(message)s"
        if include_timestamp:
            fmt = "%(asctime)s " + fmt
        if include_level and not json_format:
            fmt = fmt + " [%(levelname)s]"

        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record with structured data."""
        extra: dict[str, Any] = current_log_context()
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                extra[key] = value

        if self.json_format:
            return self._format_json(record, extra)
        message = super().format(record)
        return self._format_text(message, extra)

    def _format_json(self, record: logging.LogRecord, extra: dict[str, Any]) -> str:
        log_data: dict[str, Any] = {"message": record.getMessage(), "logger": record.name}
        log_data.update(extra)

        if self.include_level:
            log_data["level"] = record.levelname
        if self.include_timestamp:
            log_data["timestamp"] = self.formatTime(record, self.datefmt)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            log_data["error"] = str(record.exc_info[1])

        return json.dumps(log_data, default=self._format_value)

    def _format_text(self, message: str, extra: dict[str, Any]) -> str:
        if not extra:
            return message
        ctx_str = " ".join(f"{k}={self._format_value(v)}" for k, v in extra.items())
        return f"{message} {ctx_str}"

    def _format_value(self, value: Any) -> str:
        """Format a value for text output."""
        if isinstance(value, str):
            if " " in value:
                return f'"{value}"'
            return value
        if isinstance(value, datetime.datetime | datetime.date):
            return value.isoformat()
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, enum.Enum):
            return str(value.value)
        if isinstance(value, dict | list | tuple):
            try:
                return json.dumps(value, default=str)
            except (TypeError, ValueError):
                return str(value)
        return str(value)


def configure_logging(
    settings: LoggingSettings | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach a structured handler to the ``grafter`` logger hierarchy.

    Calling it again replaces the handler installed by the previous call.

    Args:
        settings: Logging settings (loaded from the environment if omitted)
        stream: Output stream, stderr by default

    Returns:
        The configured package logger
    """
    settings = settings or LoggingSettings.load()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(LogLevel.from_string(settings.level).to_stdlib_level())

    for handler in list(logger.handlers):
        if getattr(handler, "_grafter_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        StructuredFormatter(
            json_format=settings.json_format,
            include_timestamp=settings.include_timestamp,
            include_level=settings.include_level,
        )
    )
    handler._grafter_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the ``grafter`` hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
