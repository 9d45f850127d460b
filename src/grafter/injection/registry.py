# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Registration storage for the grafter container.

The container owns one base :class:`Registry`; every scope owns another that
holds its local overrides. Lookups walk the override registries from the
nearest scope outwards and finish at the base registry.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable, Iterable, Iterator, Sequence
from typing import TypeVar

from grafter.injection.errors import (
    CircularDependencyError,
    DuplicateRegistrationError,
    RegistrationFrozenError,
    UnknownTokenError,
)
from grafter.injection.registration import Registration

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Hashable)

_ACTIVE = 1
_DONE = 2


def find_cycle(
    roots: Iterable[N], dependencies_of: Callable[[N], Iterable[N]]
) -> tuple[N, ...] | None:
    """Return the first cycle reachable from ``roots``, or ``None``.

    The walk is iterative so arbitrarily deep graphs cannot exhaust the
    interpreter stack. A returned cycle repeats its first node at the end.
    """
    state: dict[N, int] = {}
    for root in roots:
        if root in state:
            continue
        path: list[N] = [root]
        state[root] = _ACTIVE
        pending: list[Iterator[N]] = [iter(dependencies_of(root))]
        while pending:
            try:
                node = next(pending[-1])
            except StopIteration:
                pending.pop()
                state[path.pop()] = _DONE
                continue
            seen = state.get(node)
            if seen == _ACTIVE:
                return (*path[path.index(node) :], node)
            if seen == _DONE:
                continue
            state[node] = _ACTIVE
            path.append(node)
            pending.append(iter(dependencies_of(node)))
    return None


class Registry:
    """Registration records keyed by token."""

    def __init__(self, name: str = "base") -> None:
        self.name = name
        self._registrations: dict[Hashable, Registration] = {}
        self._frozen = False
        self._lock = threading.RLock()

    def __contains__(self, token: object) -> bool:
        return token in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<Registry {self.name} {state} tokens={len(self)}>"

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register(self, registration: Registration, replace: bool = False) -> None:
        """Store a registration.

        Raises:
            RegistrationFrozenError: If the registry has been frozen
            DuplicateRegistrationError: If the token exists and ``replace`` is false
        """
        token = registration.token
        with self._lock:
            if self._frozen:
                raise RegistrationFrozenError(token, registry=self.name)
            if token in self._registrations and not replace:
                raise DuplicateRegistrationError(token, registry=self.name)
            self._registrations[token] = registration
        logger.debug(
            "Registered %s as %s in %s registry",
            registration.name,
            registration.lifecycle.value,
            self.name,
        )

    def get(self, token: Hashable) -> Registration | None:
        return self._registrations.get(token)

    def tokens(self) -> list[Hashable]:
        with self._lock:
            return list(self._registrations)

    def registrations(self) -> list[Registration]:
        with self._lock:
            return list(self._registrations.values())

    def freeze(self) -> None:
        """Mark the registry read-only. Idempotent."""
        with self._lock:
            if not self._frozen:
                self._frozen = True
                logger.debug("Froze %s registry with %d token(s)", self.name, len(self))

    def find(
        self, token: Hashable, overrides: Iterable[Registry] = ()
    ) -> Registration | None:
        """Search the override registries in order, then this one."""
        for registry in overrides:
            found = registry.get(token)
            if found is not None:
                return found
        return self._registrations.get(token)

    def lookup(
        self,
        token: Hashable,
        overrides: Iterable[Registry] = (),
        path: Sequence[Hashable] = (),
    ) -> Registration:
        """Like :meth:`find` but raises for tokens that are never registered.

        Raises:
            UnknownTokenError: If no registry in the chain knows the token
        """
        found = self.find(token, overrides)
        if found is None:
            raise UnknownTokenError(token, path)
        return found

    def validate(self) -> list[tuple[Hashable, Hashable]]:
        """Check this registry's own dependency graph.

        Returns:
            ``(token, dependency)`` pairs whose dependency is not registered
            here. Such tokens may still be supplied later by scope overrides.

        Raises:
            CircularDependencyError: If the declared graph contains a cycle
        """
        with self._lock:
            snapshot = dict(self._registrations)

        missing = [
            (registration.token, dependency)
            for registration in snapshot.values()
            for dependency in registration.dependencies
            if dependency not in snapshot
        ]

        def dependencies_of(token: Hashable) -> tuple[Hashable, ...]:
            registration = snapshot.get(token)
            return registration.dependencies if registration is not None else ()

        cycle = find_cycle(snapshot, dependencies_of)
        if cycle is not None:
            raise CircularDependencyError(cycle)
        return missing
