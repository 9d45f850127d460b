# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Registration records for the grafter container.

A registration describes how to build the value for one token: the factory,
its lifecycle, and the tokens whose resolved values are passed to the factory
positionally, in declared order.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from grafter.injection.lifecycle import Lifecycle, LifecyclePolicy
    from grafter.injection.scope import Scope

Factory = Callable[..., Any]
Teardown = Callable[[Any], Any]


def token_name(token: Hashable) -> str:
    """Human-readable name of a token for messages and diagnostics."""
    name = getattr(token, "__name__", None)
    if isinstance(name, str):
        return name
    if isinstance(token, str):
        return token
    return repr(token)


@dataclass(frozen=True, eq=False, slots=True)
class Registration:
    """An immutable binding from a token to a factory."""

    token: Hashable
    factory: Factory
    lifecycle: Lifecycle
    dependencies: tuple[Hashable, ...] = ()
    teardown: Teardown | None = None
    owner: Scope | None = field(default=None, repr=False)
    prebuilt: bool = False

    @classmethod
    def create(
        cls,
        token: Hashable,
        factory: Factory,
        lifecycle: Lifecycle | str,
        dependencies: Iterable[Hashable] = (),
        teardown: Teardown | None = None,
        owner: Scope | None = None,
    ) -> Registration:
        """Validate arguments and build a registration.

        Raises:
            TypeError: If the token is unhashable or a callable is not callable
            ValueError: If the lifecycle name is unknown
        """
        from grafter.injection.lifecycle import Lifecycle

        hash(token)
        if not callable(factory):
            raise TypeError(f"Factory for {token_name(token)} must be callable")
        if teardown is not None and not callable(teardown):
            raise TypeError(f"Teardown for {token_name(token)} must be callable")
        if isinstance(dependencies, (str, bytes)):
            raise TypeError(
                f"Dependencies for {token_name(token)} must be a sequence of tokens, not a string"
            )
        deps = tuple(dependencies)
        for dep in deps:
            hash(dep)
        return cls(
            token=token,
            factory=factory,
            lifecycle=Lifecycle(lifecycle),
            dependencies=deps,
            teardown=teardown,
            owner=owner,
        )

    @classmethod
    def for_instance(
        cls, token: Hashable, instance: Any, owner: Scope | None = None
    ) -> Registration:
        """Register a pre-built value; the caller keeps ownership of its teardown."""
        from grafter.injection.lifecycle import Lifecycle

        hash(token)
        return cls(
            token=token,
            factory=lambda: instance,
            lifecycle=Lifecycle.SINGLETON,
            owner=owner,
            prebuilt=True,
        )

    @property
    def policy(self) -> LifecyclePolicy:
        from grafter.injection.lifecycle import LIFECYCLE_POLICY_MAP

        return LIFECYCLE_POLICY_MAP[self.lifecycle]

    @property
    def is_async_factory(self) -> bool:
        """True when the factory is declared ``async def``.

        Factories may also return awaitables without being coroutine
        functions; the async resolution path handles both.
        """
        return inspect.iscoroutinefunction(self.factory)

    @property
    def name(self) -> str:
        return token_name(self.token)
