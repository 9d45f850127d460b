# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Logging support for grafter.
"""

from grafter.logging.config import LoggingSettings
from grafter.logging.level import LogLevel
from grafter.logging.logger import (
    StructuredFormatter,
    configure_logging,
    current_log_context,
    get_logger,
    log_context,
)

__all__ = [
    "LogLevel",
    "LoggingSettings",
    "StructuredFormatter",
    "configure_logging",
    "current_log_context",
    "get_logger",
    "log_context",
]
