# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""Error code and category registry for grafter."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grafter.errors.base import ErrorCategory, ErrorCode

logger = logging.getLogger(__name__)


class ErrorRegistry:
    """Thread-safe table of every error category and code known to grafter."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._categories: dict[str, ErrorCategory] = {}
        self._codes: dict[str, ErrorCode] = {}

    def get_category(
        self, name: str, parent: ErrorCategory | None = None
    ) -> ErrorCategory:
        """Get or create a category.

        Args:
            name: The category name
            parent: Optional parent category, used only on creation

        Returns:
            The ErrorCategory
        """
        with self._lock:
            if name in self._categories:
                return self._categories[name]

            from grafter.errors.base import ErrorCategory

            category = ErrorCategory(name, parent)
            self._categories[name] = category
            return category

    def get_code(self, code: str, category: ErrorCategory) -> ErrorCode:
        """Get or create an error code within a category.

        Args:
            code: The error code
            category: The category the code belongs to

        Returns:
            The ErrorCode
        """
        with self._lock:
            if code in self._codes:
                return self._codes[code]

            from grafter.errors.base import ErrorCode

            error_code = ErrorCode(code, category)
            self._codes[code] = error_code
            return error_code

    def lookup_code(self, code: str) -> ErrorCode | None:
        """Look up an error code without creating it."""
        with self._lock:
            found = self._codes.get(code)
        if found is None:
            logger.warning("Error code %r not found in registry", code)
        return found

    def lookup_category(self, name: str) -> ErrorCategory | None:
        with self._lock:
            return self._categories.get(name)

    def get_all_categories(self) -> list[ErrorCategory]:
        with self._lock:
            return list(self._categories.values())

    def get_all_codes(self) -> list[ErrorCode]:
        with self._lock:
            return list(self._codes.values())


# Create a single instance for use throughout the package
registry = ErrorRegistry()
