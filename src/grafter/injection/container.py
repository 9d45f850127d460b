# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
DI container implementation for grafter.

This module implements the container that provides registration, resolution,
scope management and disposal.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable, Iterable
from typing import TYPE_CHECKING, Any

from grafter.config.settings import ContainerSettings
from grafter.injection.diagnostics import dependency_graph
from grafter.injection.disposal import DisposalCoordinator
from grafter.injection.lifecycle import Lifecycle
from grafter.injection.registration import Factory, Registration, Teardown, token_name
from grafter.injection.registry import Registry
from grafter.injection.resolution import Resolver
from grafter.injection.scope import Scope
from grafter.logging import log_context

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    This container supports three lifecycles:
    - Singleton: One instance per container
    - Scoped: One instance per scope
    - Transient: New instance per resolution

    Registrations name their dependencies as tokens; resolved values are passed
    to the factory positionally, in declared order.

    Example:
        ```python
        container = Container()
        container.register_singleton("config", lambda: {"url": "x"})
        container.register_singleton("db", Database, dependencies=["config"])
        container.register_scoped("repo", Repository, dependencies=["db"])

        with container.create_scope() as scope:
            repo = scope.resolve("repo")
        ```

    Attributes:
        settings: Behavioural switches, loaded from ``GRAFTER_*`` variables
            when not supplied.
        disposal: The disposal coordinator shared by every scope.
    """

    def __init__(self, settings: ContainerSettings | None = None) -> None:
        self.settings = settings or ContainerSettings.load()
        self.disposal = DisposalCoordinator()
        self._registry = Registry()
        self._resolver = Resolver(self._registry, self.settings, self.disposal)
        self._root = Scope(self)
        self._freeze_lock = threading.Lock()

    @classmethod
    def create(
        cls,
        configure: Callable[[Container], None] | None = None,
        settings: ContainerSettings | None = None,
        freeze: bool = False,
    ) -> Container:
        """Create and configure a new container.

        Args:
            configure: Receives the new container and registers bindings.
            settings: Explicit settings; loaded from the environment if omitted.
            freeze: Freeze (and validate) the registrations once configured.
        """
        container = cls(settings)
        if configure is not None:
            configure(container)
        if freeze:
            container.freeze()
        return container

    def __repr__(self) -> str:
        state = "frozen" if self.is_frozen else "open"
        return f"<Container {state} tokens={len(self._registry)}>"

    @property
    def root_scope(self) -> Scope:
        """The container-wide scope that stores Singletons."""
        return self._root

    @property
    def is_frozen(self) -> bool:
        return self._registry.is_frozen

    @property
    def disposed(self) -> bool:
        return self._root.disposed

    # Registration

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
        """Register a factory for ``token``.

        Args:
            token: Any hashable identifier
            factory: Called with the resolved ``dependencies`` in order; may be
                ``async def`` or return an awaitable (use ``resolve_async``)
            lifecycle: Sharing policy for the produced value
            dependencies: Tokens resolved and passed to the factory
            teardown: Called with the instance when its owning scope ends,
                instead of its ``dispose``/``aclose``/``close`` method
            replace: Overwrite an existing registration instead of failing

        Raises:
            RegistrationFrozenError: After the first resolve or ``freeze()``
            DuplicateRegistrationError: If ``token`` is registered and ``replace`` is false
            ScopeDisposedError: If the container has been disposed
        """
        self._root._check_open("register")
        self._registry.register(
            Registration.create(token, factory, lifecycle, dependencies, teardown),
            replace=replace,
        )

    def register_singleton(
        self, token: Hashable, factory: Factory, **options: Any
    ) -> None:
        self.register(token, factory, lifecycle=Lifecycle.SINGLETON, **options)

    def register_scoped(self, token: Hashable, factory: Factory, **options: Any) -> None:
        self.register(token, factory, lifecycle=Lifecycle.SCOPED, **options)

    def register_transient(
        self, token: Hashable, factory: Factory, **options: Any
    ) -> None:
        self.register(token, factory, lifecycle=Lifecycle.TRANSIENT, **options)

    def register_instance(
        self, token: Hashable, instance: Any, *, replace: bool = False
    ) -> None:
        """Bind a pre-built value as a Singleton.

        The container never disposes it; its lifetime belongs to the caller.
        """
        self._root._check_open("register_instance")
        self._registry.register(Registration.for_instance(token, instance), replace=replace)

    def has_registration(self, token: Hashable, scope: Scope | None = None) -> bool:
        scope = scope or self._root
        return self._registry.find(token, scope.override_chain()) is not None

    def freeze(self) -> None:
        """Make the base registrations read-only.

        Called implicitly by the first resolve. With
        ``settings.validate_on_freeze`` the graph is checked first: cycles
        raise, and dependencies on unregistered tokens are logged since scope
        overrides may still supply them.

        Raises:
            CircularDependencyError: If validation finds a cycle
        """
        if self._registry.is_frozen:
            return
        with self._freeze_lock:
            if self._registry.is_frozen:
                return
            if self.settings.validate_on_freeze:
                for token, dependency in self._registry.validate():
                    logger.warning(
                        "%s depends on %s, which is not registered on the container",
                        token_name(token),
                        token_name(dependency),
                    )
            self._registry.freeze()

    # Resolution

    def _prepare(self, token: Hashable, scope: Scope | None) -> Scope:
        scope = scope or self._root
        if scope.container is not self:
            raise ValueError(f"{scope!r} belongs to a different container")
        scope._enter("resolve")
        try:
            # Unknown tokens fail before anything is frozen or cached
            self._resolver.lookup(token, scope)
            self.freeze()
            scope.freeze_chain()
            self._resolver.ensure_acyclic(token, scope)
        except BaseException:
            scope._exit()
            raise
        return scope

    def resolve(self, token: Hashable, scope: Scope | None = None) -> Any:
        """Resolve ``token`` from ``scope`` (the root scope by default).

        Raises:
            UnknownTokenError: If no registration is reachable
            CircularDependencyError: If the declared graph has a cycle
            FactoryError: If a factory raised; nothing is cached
            AsyncFactoryError: If a factory returned an awaitable
            ScopeDisposedError: If the scope is disposed or being disposed
            ScopeError: If a Scoped token is resolved against the root scope
        """
        scope = self._prepare(token, scope)
        try:
            with log_context(scope_id=scope.id):
                return self._resolver.resolve(token, scope)
        finally:
            scope._exit()

    async def resolve_async(self, token: Hashable, scope: Scope | None = None) -> Any:
        """Resolve ``token``, awaiting asynchronous factories.

        Raises the same errors as :meth:`resolve`, except ``AsyncFactoryError``.
        """
        scope = self._prepare(token, scope)
        try:
            with log_context(scope_id=scope.id):
                return await self._resolver.resolve_async(token, scope)
        finally:
            scope._exit()

    def resolve_optional(self, token: Hashable, scope: Scope | None = None) -> Any | None:
        """Resolve ``token`` or return None if it is not registered.

        Unknown dependencies further down the graph still raise.
        """
        if not self.has_registration(token, scope):
            return None
        return self.resolve(token, scope)

    async def resolve_optional_async(
        self, token: Hashable, scope: Scope | None = None
    ) -> Any | None:
        if not self.has_registration(token, scope):
            return None
        return await self.resolve_async(token, scope)

    # Scopes

    def create_scope(self, parent: Scope | None = None) -> Scope:
        """Create a scope nested in ``parent`` (the root scope by default)."""
        parent = parent or self._root
        scope = Scope(self, parent=parent)
        parent._adopt(scope)
        logger.debug("Created scope %s (parent %s)", scope.id, parent.id)
        return scope

    def dispose_scope(self, scope: Scope) -> None:
        """Dispose ``scope``, its child scopes and every instance it tracks.

        Raises:
            DisposalError: Aggregating every teardown that failed
        """
        scope.dispose()

    async def dispose_scope_async(self, scope: Scope) -> None:
        await scope.dispose_async()

    def dispose(self) -> None:
        """Dispose every live scope, then the Singletons in the root scope."""
        self._root.dispose()

    async def dispose_async(self) -> None:
        await self._root.dispose_async()

    # Diagnostics

    def dependency_graph(self, scope: Scope | None = None) -> dict[str, list[str]]:
        """Declared dependencies of every token visible from ``scope``."""
        return dependency_graph(self._registry, scope)

    def registered_tokens(self) -> list[Hashable]:
        return self._registry.tokens()

    def __enter__(self) -> Container:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    async def __aenter__(self) -> Container:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose_async()


