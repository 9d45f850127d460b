# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Base error classes and utilities for the grafter error handling system.

This module provides the foundation for structured error handling with
error codes, contextual information, and error categories.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final

from grafter.errors.registry import registry


class ErrorSeverity(str, Enum):
    """Severity levels for errors raised by grafter."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorCategory:
    """Error category with hierarchical support."""

    def __init__(self, name: str, parent: ErrorCategory | None = None) -> None:
        """Initialize a new error category.

        Args:
            name: Unique identifier for this category
            parent: Optional parent category for hierarchical structure
        """
        self.name = name
        self.parent = parent

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"ErrorCategory({self.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorCategory):
            return False
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def is_subcategory_of(self, category: ErrorCategory) -> bool:
        """Check if this category is the given category or nested beneath it."""
        current: ErrorCategory | None = self
        while current:
            if current == category:
                return True
            current = current.parent
        return False

    def get_all_subcategories(self) -> set[ErrorCategory]:
        """Get this category and all its subcategories recursively.

        Returns:
            A set containing this category and all its subcategories.
        """
        result = {self}
        queue = [self]

        while queue:
            current = queue.pop(0)
            for category in registry.get_all_categories():
                if category.parent == current and category not in result:
                    result.add(category)
                    queue.append(category)

        return result

    @classmethod
    def get_by_name(cls, name: str) -> ErrorCategory | None:
        return registry.lookup_category(name)

    @classmethod
    def get_or_create(
        cls, name: str, parent: ErrorCategory | None = None
    ) -> ErrorCategory:
        """Get or create an error category."""
        return registry.get_category(name, parent)


INTERNAL: Final = ErrorCategory.get_or_create("INTERNAL")


class ErrorCode:
    """Error code associated with a category."""

    def __init__(self, code: str, category: ErrorCategory | None = None) -> None:
        """Initialize a new error code.

        Args:
            code: Unique identifier for this error code
            category: The category this error code belongs to
        """
        self.code = code
        self.category = category or INTERNAL

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorCode):
            return False
        return self.code == other.code

    def __hash__(self) -> int:
        return hash(self.code)

    @classmethod
    def get_by_code(cls, code: str) -> ErrorCode:
        """Get an error code by its string representation.

        Raises:
            ValueError: If the code was never registered
        """
        error_code = registry.lookup_code(code)
        if error_code is None:
            raise ValueError(f"Error code '{code}' not found in registry")
        return error_code

    @classmethod
    def filter_by_category(cls, category: ErrorCategory) -> list[ErrorCode]:
        """Return every error code in a category or any of its subcategories."""
        subcategories = category.get_all_subcategories()
        return [
            code for code in registry.get_all_codes() if code.category in subcategories
        ]

    @classmethod
    def get_or_create(cls, name: str, category: ErrorCategory) -> ErrorCode:
        """Get or create an error code."""
        return registry.get_code(name, category)


INTERNAL_ERROR: Final = ErrorCode.get_or_create("INTERNAL_ERROR", INTERNAL)


class GrafterError(Exception):
    """
    Base error class for grafter errors.
    Should only be subclassed for package-specific errors, not instantiated directly.
    """

    message: str
    code: ErrorCode
    severity: ErrorSeverity
    context: dict[str, Any]
    timestamp: datetime

    def __new__(cls, *args: Any, **kwargs: Any) -> GrafterError:
        if cls is GrafterError:
            raise TypeError(
                "Do not instantiate GrafterError directly; subclass it for specific errors."
            )
        return super().__new__(cls)

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize a new GrafterError.

        Args:
            message: Human-readable error message
            code: ErrorCode object containing the code and category
            severity: Severity level of the error
            context: Additional contextual information
            **kwargs: Merged into the context
        """
        if not isinstance(code, ErrorCode):
            raise TypeError("code must be an ErrorCode instance, not a string")

        full_context = dict(context or {})
        full_context.update(kwargs)

        super().__init__(message)
        self.code = code
        self.message = message
        self.category = code.category
        self.severity = severity
        self.context = full_context
        self.timestamp = datetime.now(UTC)

    def add_context(self, key: str, value: Any) -> GrafterError:
        """Add a key-value pair to the error context and return self for chaining."""
        self.context[key] = value
        return self

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Return a dictionary representation of the error."""
        return {
            "code": self.code.code,
            "message": self.message,
            "category": self.category.name,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
