# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Structured error handling for grafter.
"""

from grafter.errors.base import (
    INTERNAL,
    INTERNAL_ERROR,
    ErrorCategory,
    ErrorCode,
    ErrorSeverity,
    GrafterError,
)
from grafter.errors.registry import ErrorRegistry, registry

__all__ = [
    "INTERNAL",
    "INTERNAL_ERROR",
    "ErrorCategory",
    "ErrorCode",
    "ErrorRegistry",
    "ErrorSeverity",
    "GrafterError",
    "registry",
]
