# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Error classes for the grafter dependency injection system.

This module contains specialized error classes for the dependency injection system,
providing detailed error messages and context for resolution failures.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any, Final

from grafter.errors.base import ErrorCategory, ErrorCode, ErrorSeverity, GrafterError
from grafter.injection.registration import token_name

# Define error categories and codes
INJECTION: Final = ErrorCategory.get_or_create("INJECTION")
INJECTION_ERROR: Final = ErrorCode.get_or_create("INJECTION_ERROR", INJECTION)
INJECTION_UNKNOWN_TOKEN: Final = ErrorCode.get_or_create(
    "INJECTION_UNKNOWN_TOKEN", INJECTION
)
INJECTION_CIRCULAR_DEPENDENCY: Final = ErrorCode.get_or_create(
    "INJECTION_CIRCULAR_DEPENDENCY", INJECTION
)
INJECTION_FACTORY: Final = ErrorCode.get_or_create("INJECTION_FACTORY", INJECTION)
INJECTION_ASYNC_FACTORY: Final = ErrorCode.get_or_create(
    "INJECTION_ASYNC_FACTORY", INJECTION
)
INJECTION_DISPOSAL: Final = ErrorCode.get_or_create("INJECTION_DISPOSAL", INJECTION)

REGISTRY: Final = ErrorCategory.get_or_create("REGISTRY", parent=INJECTION)
REGISTRATION_ERROR: Final = ErrorCode.get_or_create("REGISTRATION_ERROR", REGISTRY)
REGISTRATION_DUPLICATE: Final = ErrorCode.get_or_create(
    "REGISTRATION_DUPLICATE", REGISTRY
)
REGISTRATION_FROZEN: Final = ErrorCode.get_or_create("REGISTRATION_FROZEN", REGISTRY)

SCOPE: Final = ErrorCategory.get_or_create("SCOPE", parent=INJECTION)
SCOPE_ERROR: Final = ErrorCode.get_or_create("SCOPE_ERROR", SCOPE)
SCOPE_DISPOSED: Final = ErrorCode.get_or_create("SCOPE_DISPOSED", SCOPE)


def _chain(path: Sequence[Hashable]) -> list[str]:
    return [token_name(token) for token in path]


class InjectionError(GrafterError):
    """Base class for all DI-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = INJECTION_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            code=code,
            severity=severity,
            context=context,
            **kwargs,
        )


class UnknownTokenError(InjectionError):
    """Raised when no registration is reachable for a requested token."""

    def __init__(
        self,
        token: Hashable,
        path: Sequence[Hashable] = (),
        **kwargs: Any,
    ) -> None:
        self.token = token
        self.path = tuple(path)
        message = f"No registration found for token {token_name(token)}"
        if self.path:
            message += f" (required by {' -> '.join(_chain(self.path))})"
        super().__init__(
            message,
            code=INJECTION_UNKNOWN_TOKEN,
            token=token_name(token),
            dependency_chain=_chain(self.path),
            **kwargs,
        )


class CircularDependencyError(InjectionError):
    """Raised when the declared dependency graph contains a cycle.

    ``path`` holds the full cycle with the repeated token at both ends,
    e.g. ``("a", "b", "c", "a")``.
    """

    def __init__(self, path: Sequence[Hashable], **kwargs: Any) -> None:
        self.path = tuple(path)
        chain = _chain(self.path)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(chain)}",
            code=INJECTION_CIRCULAR_DEPENDENCY,
            dependency_chain=chain,
            circular_dependency=True,
            **kwargs,
        )


class RegistrationError(InjectionError):
    """Base class for registry mutation conflicts."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = REGISTRATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, code=code, **kwargs)


class DuplicateRegistrationError(RegistrationError):
    """Raised when registering a token that is already registered."""

    def __init__(self, token: Hashable, **kwargs: Any) -> None:
        self.token = token
        super().__init__(
            f"Token {token_name(token)} is already registered; pass replace=True to overwrite it",
            code=REGISTRATION_DUPLICATE,
            token=token_name(token),
            **kwargs,
        )


class RegistrationFrozenError(RegistrationError):
    """Raised when registering into a registry that has been frozen."""

    def __init__(self, token: Hashable, **kwargs: Any) -> None:
        self.token = token
        super().__init__(
            f"Cannot register {token_name(token)}: registrations are frozen",
            code=REGISTRATION_FROZEN,
            token=token_name(token),
            **kwargs,
        )


class ScopeError(InjectionError):
    """Raised when there's an error related to scopes."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = SCOPE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, code=code, **kwargs)

    @classmethod
    def outside_scope(cls, token: Hashable) -> ScopeError:
        """Create a scope error for resolving a scoped token against the root scope."""
        return cls(
            f"Cannot resolve scoped token {token_name(token)} outside a scope",
            token=token_name(token),
        )

    @classmethod
    def drain_timeout(cls, scope_id: str, in_flight: int) -> ScopeError:
        """Create a scope error for in-flight resolutions that never finished."""
        return cls(
            f"Timed out waiting for {in_flight} in-flight resolution(s) on scope {scope_id}",
            scope_id=scope_id,
            in_flight=in_flight,
        )


class ScopeDisposedError(ScopeError):
    """Raised when an operation is attempted on a disposed scope."""

    def __init__(self, scope_id: str, operation: str, **kwargs: Any) -> None:
        self.scope_id = scope_id
        super().__init__(
            f"Scope {scope_id} is disposed, cannot perform {operation}",
            code=SCOPE_DISPOSED,
            scope_id=scope_id,
            operation=operation,
            **kwargs,
        )


class FactoryError(InjectionError):
    """Raised when a user-supplied factory raises or rejects.

    The original exception is available as ``__cause__`` and ``original_error``.
    """

    def __init__(
        self,
        token: Hashable,
        original_error: BaseException,
        path: Sequence[Hashable] = (),
        **kwargs: Any,
    ) -> None:
        self.token = token
        self.original_error = original_error
        self.path = tuple(path)
        super().__init__(
            f"Factory for {token_name(token)} failed: {original_error!r}",
            code=INJECTION_FACTORY,
            token=token_name(token),
            error_type=type(original_error).__name__,
            original_error=str(original_error),
            dependency_chain=_chain(self.path),
            **kwargs,
        )
        self.__cause__ = original_error


class AsyncFactoryError(InjectionError):
    """Raised when a synchronous resolve reaches asynchronous construction."""

    def __init__(
        self, token: Hashable, message: str | None = None, **kwargs: Any
    ) -> None:
        self.token = token
        super().__init__(
            message
            or f"Factory for {token_name(token)} returned an awaitable; use resolve_async()",
            code=INJECTION_ASYNC_FACTORY,
            token=token_name(token),
            **kwargs,
        )

    @classmethod
    def in_progress(cls, token: Hashable) -> AsyncFactoryError:
        """Create an error for a sync resolve that would block on its own thread's event loop."""
        return cls(
            token,
            f"{token_name(token)} is being built by a task on this thread; use resolve_async()",
            in_progress=True,
        )


class DisposalError(InjectionError):
    """Aggregates every teardown failure from one disposal pass."""

    def __init__(
        self,
        scope_id: str,
        failures: Sequence[tuple[Any, BaseException]],
        **kwargs: Any,
    ) -> None:
        self.scope_id = scope_id
        self.failures = list(failures)
        details = "; ".join(
            f"{type(instance).__name__}: {error!r}" for instance, error in self.failures
        )
        super().__init__(
            f"{len(self.failures)} teardown(s) failed while disposing scope {scope_id}: {details}",
            code=INJECTION_DISPOSAL,
            scope_id=scope_id,
            failure_count=len(self.failures),
            **kwargs,
        )

    @property
    def exceptions(self) -> list[BaseException]:
        return [error for _, error in self.failures]
