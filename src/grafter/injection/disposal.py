# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Service disposal implementation for the grafter container.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from grafter.injection.errors import DisposalError

if TYPE_CHECKING:
    from grafter.injection.registration import Teardown
    from grafter.injection.scope import Scope

logger = logging.getLogger(__name__)

# Checked in order; the first callable attribute wins.
TEARDOWN_METHODS = ("dispose", "aclose", "close")


def find_teardown(
    instance: Any, teardown: Teardown | None = None
) -> Callable[[], Any] | None:
    """Return a zero-argument callable that tears ``instance`` down, if any."""
    if teardown is not None:
        return lambda: teardown(instance)
    if instance is None or isinstance(instance, type):
        return None
    for name in TEARDOWN_METHODS:
        method = getattr(instance, name, None)
        if callable(method):
            return method
    return None


def _discard_awaitable(awaitable: Any) -> None:
    close = getattr(awaitable, "close", None)
    if inspect.iscoroutine(awaitable) and close is not None:
        close()


class DisposalCoordinator:
    """Tracks disposable instances per scope and tears them down on scope end.

    An instance is owned by the first scope that tracks it, so an object
    reachable through several registrations is torn down once.
    """

    def __init__(self) -> None:
        self._tracked: set[int] = set()
        self._lock = threading.Lock()

    def track(self, scope: Scope, instance: Any, teardown: Teardown | None = None) -> bool:
        """Record ``instance`` for teardown when ``scope`` is disposed.

        Returns:
            True if the instance was tracked, False when it has no teardown
            or is already tracked by a scope.
        """
        callback = find_teardown(instance, teardown)
        if callback is None:
            return False
        key = id(instance)
        with self._lock:
            if key in self._tracked:
                return False
            self._tracked.add(key)
            with scope._state:
                scope._disposables.append((instance, callback))
        logger.debug(
            "Tracking %s for disposal in scope %s", type(instance).__name__, scope.id
        )
        return True

    def _take(self, scope: Scope) -> list[tuple[Any, Callable[[], Any]]]:
        with scope._state:
            entries = list(scope._disposables)
            scope._disposables.clear()
        with self._lock:
            self._tracked.difference_update(id(instance) for instance, _ in entries)
        entries.reverse()
        return entries

    def _failed(
        self,
        scope: Scope,
        failures: list[tuple[Any, BaseException]],
        instance: Any,
        error: BaseException,
    ) -> None:
        logger.warning(
            "Error disposing %s in scope %s: %s",
            type(instance).__name__,
            scope.id,
            error,
            exc_info=error,
        )
        failures.append((instance, error))

    def dispose_all(self, scope: Scope) -> None:
        """Tear down every tracked instance, newest first.

        Raises:
            DisposalError: Listing every teardown that failed
        """
        failures: list[tuple[Any, BaseException]] = []
        for instance, callback in self._take(scope):
            try:
                result = callback()
            except Exception as exc:
                self._failed(scope, failures, instance, exc)
                continue
            if inspect.isawaitable(result):
                _discard_awaitable(result)
                self._failed(
                    scope,
                    failures,
                    instance,
                    TypeError(
                        f"Teardown of {type(instance).__name__} is asynchronous; "
                        "dispose the scope with dispose_async()"
                    ),
                )
        if failures:
            raise DisposalError(scope.id, failures)

    async def dispose_all_async(self, scope: Scope) -> None:
        """Async variant of :meth:`dispose_all`; awaits async teardowns.

        Raises:
            DisposalError: Listing every teardown that failed
        """
        failures: list[tuple[Any, BaseException]] = []
        for instance, callback in self._take(scope):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._failed(scope, failures, instance, exc)
        if failures:
            raise DisposalError(scope.id, failures)
