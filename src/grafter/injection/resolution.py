# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Service resolution implementation for the grafter container.

The resolver walks the declared dependency graph from a requested token.
The resolution stack is an immutable tuple passed down the recursion, so
concurrent resolutions never share cycle-detection state. Singleton and
Scoped construction is claimed per (cache scope, token) through a
``concurrent.futures.Future`` that sync callers wait on and async callers
await, so one builder runs whichever path gets there first.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

from grafter.injection.diagnostics import capture_state
from grafter.injection.errors import (
    AsyncFactoryError,
    CircularDependencyError,
    FactoryError,
    InjectionError,
    UnknownTokenError,
)
from grafter.injection.registry import find_cycle
from grafter.injection.scope import MISSING

if TYPE_CHECKING:
    from grafter.config.settings import ContainerSettings
    from grafter.injection.disposal import DisposalCoordinator
    from grafter.injection.registration import Registration
    from grafter.injection.registry import Registry
    from grafter.injection.scope import Scope

logger = logging.getLogger(__name__)

Stack = tuple[Hashable, ...]


class Resolver:
    """Builds object graphs from registrations."""

    def __init__(
        self,
        registry: Registry,
        settings: ContainerSettings,
        disposal: DisposalCoordinator,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._disposal = disposal

    def lookup(
        self, token: Hashable, scope: Scope, stack: Stack = ()
    ) -> Registration:
        """Find the registration visible from ``scope``.

        Raises:
            UnknownTokenError: With the registered tokens captured as context
        """
        try:
            return self._registry.lookup(token, scope.override_chain(), stack)
        except UnknownTokenError as error:
            capture_state(error, self._registry, scope)
            raise

    def ensure_acyclic(self, token: Hashable, scope: Scope) -> None:
        """Walk the declared graph reachable from ``token`` before building anything.

        Nodes are ``(token, scope)`` pairs because dependencies are looked up
        from the scope a lifecycle policy picks. Verified nodes are
        remembered on their scope.

        Raises:
            CircularDependencyError: If any reachable cycle exists
        """
        if token in scope._verified:
            return
        visited: list[tuple[Hashable, Scope]] = []

        def dependencies_of(node: tuple[Hashable, Scope]) -> list[tuple[Hashable, Scope]]:
            current, current_scope = node
            visited.append(node)
            if current in current_scope._verified:
                return []
            registration = self._registry.find(current, current_scope.override_chain())
            if registration is None:
                return []
            dependency_scope = registration.policy.dependency_scope(
                registration, current_scope, self._settings
            )
            return [(dependency, dependency_scope) for dependency in registration.dependencies]

        cycle = find_cycle([(token, scope)], dependencies_of)
        if cycle is not None:
            raise CircularDependencyError(tuple(node[0] for node in cycle))
        for verified_token, verified_scope in visited:
            verified_scope._verified.add(verified_token)

    # Synchronous path

    def resolve(self, token: Hashable, scope: Scope, stack: Stack = ()) -> Any:
        """Resolve ``token`` from ``scope``, sharing instances per lifecycle."""
        registration = self.lookup(token, scope, stack)
        if token in stack:
            raise CircularDependencyError((*stack[stack.index(token) :], token))

        cache = registration.policy.cache_scope(registration, scope, self._settings)
        if cache is None:
            return self._construct(registration, scope, stack)

        while True:
            instance = cache.get_cached(token)
            if instance is not MISSING:
                return instance
            future, builder = cache.claim(token)
            if builder:
                break
            if not future.done() and future.builder_thread == threading.get_ident():
                # Blocking here would stall the event loop doing the build
                raise AsyncFactoryError.in_progress(token)
            instance = future.result()
            if instance is not MISSING:
                return instance

        try:
            instance = cache.store(token, self._construct(registration, scope, stack))
        except Exception as exc:
            cache.release(token, future, error=exc)
            raise
        except BaseException:
            cache.release(token, future)
            raise
        cache.release(token, future, instance)
        return instance

    def _construct(self, registration: Registration, scope: Scope, stack: Stack) -> Any:
        if registration.is_async_factory:
            raise AsyncFactoryError(registration.token)
        dependency_scope = registration.policy.dependency_scope(
            registration, scope, self._settings
        )
        inner = (*stack, registration.token)
        arguments = [
            self.resolve(dependency, dependency_scope, inner)
            for dependency in registration.dependencies
        ]
        try:
            instance = registration.factory(*arguments)
        except InjectionError:
            raise
        except Exception as exc:
            raise self._factory_failed(registration, exc, inner) from exc
        if inspect.isawaitable(instance):
            if inspect.iscoroutine(instance):
                instance.close()
            raise AsyncFactoryError(registration.token)
        self._track(registration, scope, instance)
        return instance

    # Asynchronous path

    async def resolve_async(
        self, token: Hashable, scope: Scope, stack: Stack = ()
    ) -> Any:
        """Async variant of :meth:`resolve`; awaits factories that return awaitables.

        Shares construction claims with the sync path, so a Singleton raced
        from threads and tasks is still built once.
        """
        registration = self.lookup(token, scope, stack)
        if token in stack:
            raise CircularDependencyError((*stack[stack.index(token) :], token))

        cache = registration.policy.cache_scope(registration, scope, self._settings)
        if cache is None:
            return await self._construct_async(registration, scope, stack)

        while True:
            instance = cache.get_cached(token)
            if instance is not MISSING:
                return instance
            future, builder = cache.claim(token)
            if builder:
                break
            try:
                instance = await asyncio.shield(asyncio.wrap_future(future))
            except AsyncFactoryError:
                # A sync caller won the claim but cannot await; build it here
                continue
            if instance is not MISSING:
                return instance

        try:
            instance = cache.store(
                token, await self._construct_async(registration, scope, stack)
            )
        except Exception as exc:
            cache.release(token, future, error=exc)
            raise
        except BaseException:
            cache.release(token, future)
            raise
        cache.release(token, future, instance)
        return instance

    async def _construct_async(
        self, registration: Registration, scope: Scope, stack: Stack
    ) -> Any:
        dependency_scope = registration.policy.dependency_scope(
            registration, scope, self._settings
        )
        inner = (*stack, registration.token)
        arguments = []
        for dependency in registration.dependencies:
            arguments.append(await self.resolve_async(dependency, dependency_scope, inner))
        try:
            instance = registration.factory(*arguments)
            if inspect.isawaitable(instance):
                instance = await instance
        except InjectionError:
            raise
        except Exception as exc:
            raise self._factory_failed(registration, exc, inner) from exc
        self._track(registration, scope, instance)
        return instance

    # Shared steps

    def _factory_failed(
        self, registration: Registration, error: Exception, path: Stack
    ) -> FactoryError:
        logger.debug("Factory for %s failed", registration.name, exc_info=error)
        return FactoryError(registration.token, error, path)

    def _track(self, registration: Registration, scope: Scope, instance: Any) -> None:
        if registration.prebuilt:
            return
        owner = registration.policy.disposal_scope(registration, scope, self._settings)
        if owner is not None:
            self._disposal.track(owner, instance, registration.teardown)
