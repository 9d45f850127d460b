# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Log levels for grafter logging.
"""

from __future__ import annotations

import logging
from enum import Enum


class LogLevel(str, Enum):
    """Levels accepted by ``GRAFTER_LOGGING_LEVEL``.

    Lookup ignores case and surrounding whitespace, so
    ``LogLevel(" debug ") is LogLevel.DEBUG``.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def _missing_(cls, value: object) -> LogLevel | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None

    def to_stdlib_level(self) -> int:
        """The numeric level ``logging`` uses for this name."""
        return logging.getLevelNamesMapping()[self.value]

    @classmethod
    def from_string(cls, value: str) -> LogLevel:
        """Parse a level name.

        Raises:
            ValueError: If the name is not one of the members
        """
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(cls.__members__)
            raise ValueError(f"Invalid log level: {value!r} (expected one of {choices})") from None
