# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Scopes for the grafter container.

A scope caches Scoped instances, owns the disposables created for it and may
override registrations for itself and its descendants. The root scope is the
container-wide singleton store.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections.abc import Hashable, Iterable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Final

from grafter.injection.errors import DisposalError, ScopeDisposedError, ScopeError
from grafter.injection.lifecycle import Lifecycle
from grafter.injection.registration import Factory, Registration, Teardown
from grafter.injection.registry import Registry
from grafter.logging import log_context

if TYPE_CHECKING:
    from types import TracebackType

    from grafter.injection.container import Container

logger = logging.getLogger(__name__)

MISSING: Final = object()


class Scope:
    """A bounded context whose Scoped instances are cached and disposed together.

    Scopes are created with :meth:`Container.create_scope` or
    :meth:`Scope.create_scope` and can be used as (async) context managers:

        ```python
        with container.create_scope() as scope:
            repo = scope.resolve("repo")
        # every disposable created for the scope has been torn down here
        ```
    """

    def __init__(self, container: Container, parent: Scope | None = None) -> None:
        self._container = container
        self.parent = parent
        self.id = "root" if parent is None else uuid.uuid4().hex[:12]
        self.depth: int = 0 if parent is None else parent.depth + 1
        self.overrides = Registry(f"scope:{self.id}")

        self._instances: dict[Hashable, Any] = {}
        self._disposables: list[tuple[Any, Any]] = []
        self._children: list[Scope] = []
        self._verified: set[Hashable] = set()

        # Guards in-flight accounting, disposal state and the disposable list
        self._state = threading.Condition()
        self._in_flight = 0
        self._closing = False
        self._disposing = False
        self._disposed = False

        # Guards the construction claims shared by the sync and async paths
        self._claim_lock = threading.Lock()
        self._pending: dict[Hashable, Future[Any]] = {}

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<Scope {self.id} depth={self.depth} {state}>"

    @property
    def container(self) -> Container:
        return self._container

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def root(self) -> Scope:
        scope = self
        while scope.parent is not None:
            scope = scope.parent
        return scope

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def chain(self) -> list[Scope]:
        """This scope followed by its ancestors, nearest first."""
        scopes: list[Scope] = []
        scope: Scope | None = self
        while scope is not None:
            scopes.append(scope)
            scope = scope.parent
        return scopes

    def override_chain(self) -> list[Registry]:
        return [scope.overrides for scope in self.chain]

    # Registration overrides

    def register(
        self,
        token: Hashable,
        factory: Factory,
        *,
        lifecycle: Lifecycle | str = Lifecycle.TRANSIENT,
        dependencies: Iterable[Hashable] = (),
        teardown: Teardown | None = None,
        replace: bool = False,
    ) -> None:
        """Override ``token`` for this scope and its descendants.

        Allowed until the first resolve made through this scope or one of its
        descendants.
        """
        self._check_open("register")
        registration = Registration.create(
            token, factory, lifecycle, dependencies, teardown, owner=self
        )
        self.overrides.register(registration, replace=replace)

    def register_instance(
        self, token: Hashable, instance: Any, *, replace: bool = False
    ) -> None:
        """Bind a pre-built value for this scope; it is not disposed by the scope."""
        self._check_open("register_instance")
        self.overrides.register(
            Registration.for_instance(token, instance, owner=self), replace=replace
        )

    # Resolution

    def resolve(self, token: Hashable) -> Any:
        return self._container.resolve(token, self)

    async def resolve_async(self, token: Hashable) -> Any:
        return await self._container.resolve_async(token, self)

    def resolve_optional(self, token: Hashable) -> Any | None:
        return self._container.resolve_optional(token, self)

    def has_registration(self, token: Hashable) -> bool:
        return self._container.has_registration(token, self)

    def create_scope(self) -> Scope:
        """Create a nested scope."""
        return self._container.create_scope(self)

    # Cache access used by the resolver

    def get_cached(self, token: Hashable) -> Any:
        return self._instances.get(token, MISSING)

    def store(self, token: Hashable, instance: Any) -> Any:
        """Cache ``instance`` unless a value is already cached; return the cached value."""
        with self._state:
            if self._disposed:
                raise ScopeDisposedError(self.id, "store")
            return self._instances.setdefault(token, instance)

    def cached_tokens(self) -> list[Hashable]:
        with self._state:
            return list(self._instances)

    def claim(self, token: Hashable) -> tuple[Future[Any], bool]:
        """Claim construction of ``token`` in this scope.

        Returns:
            ``(future, True)`` when the caller must build the instance and
            settle the future with :meth:`release`. Otherwise ``(future,
            False)``: the future is already done when a value is cached, or
            settles when the current builder finishes. A builder that gives
            up without a value settles it with ``MISSING``, and waiters retry.
        """
        with self._claim_lock:
            instance = self.get_cached(token)
            if instance is not MISSING:
                done: Future[Any] = Future()
                done.set_result(instance)
                return done, False
            future = self._pending.get(token)
            if future is not None:
                return future, False
            future = self._pending[token] = Future()
            future.builder_thread = threading.get_ident()  # type: ignore[attr-defined]
            return future, True

    def release(
        self,
        token: Hashable,
        future: Future[Any],
        result: Any = MISSING,
        error: BaseException | None = None,
    ) -> None:
        """Settle a claim taken with :meth:`claim` and wake its waiters."""
        with self._claim_lock:
            if self._pending.get(token) is future:
                del self._pending[token]
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def freeze_chain(self) -> None:
        """Freeze the overrides of this scope and every ancestor."""
        for scope in self.chain:
            if not scope.overrides.is_frozen:
                scope.overrides.freeze()

    # In-flight accounting

    def _check_open(self, operation: str) -> None:
        if self._closing:
            raise ScopeDisposedError(self.id, operation)

    def _enter(self, operation: str) -> None:
        with self._state:
            if self._closing:
                raise ScopeDisposedError(self.id, operation)
            self._in_flight += 1

    def _exit(self) -> None:
        with self._state:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._state.notify_all()

    def _adopt(self, child: Scope) -> None:
        with self._state:
            if self._closing:
                raise ScopeDisposedError(self.id, "create_scope")
            self._children.append(child)

    def _begin_close(self) -> bool:
        with self._state:
            if self._disposing or self._disposed:
                return False
            self._closing = True
            self._disposing = True
            return True

    def _wait_drained(self) -> None:
        timeout = self._container.settings.drain_timeout
        with self._state:
            if not self._state.wait_for(lambda: self._in_flight == 0, timeout):
                # Stay closed to new work; a later dispose() can finish the job
                self._disposing = False
                raise ScopeError.drain_timeout(self.id, self._in_flight)

    def _finish_close(self) -> None:
        with self._state:
            self._disposed = True
            self._instances.clear()
            self._children.clear()
        if self.parent is not None:
            with self.parent._state:
                if self in self.parent._children:
                    self.parent._children.remove(self)

    def _live_children(self) -> list[Scope]:
        with self._state:
            return list(reversed(self._children))

    # Disposal

    def dispose(self) -> None:
        """Block new resolutions, drain in-flight ones, then tear everything down.

        Child scopes are disposed first, newest first. Idempotent.

        Raises:
            DisposalError: If any teardown in this scope or a child failed
            ScopeError: If ``drain_timeout`` expires first; the scope stays
                closed to new work and ``dispose()`` may be called again
        """
        if not self._begin_close():
            return
        with log_context(scope_id=self.id):
            logger.debug("Disposing scope %s", self.id)
            self._wait_drained()
            failures: list[tuple[Any, BaseException]] = []
            for child in self._live_children():
                try:
                    child.dispose()
                except DisposalError as exc:
                    failures.extend(exc.failures)
            try:
                self._container.disposal.dispose_all(self)
            except DisposalError as exc:
                failures.extend(exc.failures)
            self._finish_close()
            if failures:
                raise DisposalError(self.id, failures)

    async def dispose_async(self) -> None:
        """Async variant of :meth:`dispose`; awaits async teardowns."""
        if not self._begin_close():
            return
        with log_context(scope_id=self.id):
            logger.debug("Disposing scope %s", self.id)
            if self._in_flight:
                # Wait off-loop so in-flight tasks on this loop can finish
                await asyncio.to_thread(self._wait_drained)
            failures: list[tuple[Any, BaseException]] = []
            for child in self._live_children():
                try:
                    await child.dispose_async()
                except DisposalError as exc:
                    failures.extend(exc.failures)
            try:
                await self._container.disposal.dispose_all_async(self)
            except DisposalError as exc:
                failures.extend(exc.failures)
            self._finish_close()
            if failures:
                raise DisposalError(self.id, failures)

    def __enter__(self) -> Scope:
        self._check_open("__enter__")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    async def __aenter__(self) -> Scope:
        self._check_open("__aenter__")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose_async()
