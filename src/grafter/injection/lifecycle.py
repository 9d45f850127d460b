# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Lifecycles and the policies that enforce them.

A policy answers three questions for a registration resolved from a scope:
which scope caches the instance, which scope its dependencies are resolved
from, and which scope takes ownership of its teardown.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from grafter.injection.errors import ScopeError

if TYPE_CHECKING:
    from grafter.config.settings import ContainerSettings
    from grafter.injection.registration import Registration
    from grafter.injection.scope import Scope


class Lifecycle(str, Enum):
    """Sharing policy for the value a registration produces."""

    TRANSIENT = "transient"
    """A new instance for every request."""

    SINGLETON = "singleton"
    """One instance for the lifetime of the container."""

    SCOPED = "scoped"
    """One instance per scope."""

    def __str__(self) -> str:
        return self.value


class SingletonPolicy:
    lifecycle = Lifecycle.SINGLETON

    def home(self, registration: Registration, scope: Scope) -> Scope:
        # Scope-local overrides live with the scope that declared them
        return registration.owner or scope.root

    def cache_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        return self.home(registration, scope)

    def dependency_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        # Strict mode keeps a Singleton from capturing a shorter-lived instance
        if settings.strict_scopes:
            return self.home(registration, scope)
        return scope

    def disposal_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        return self.home(registration, scope)


class ScopedPolicy:
    lifecycle = Lifecycle.SCOPED

    def cache_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        if scope.is_root and settings.strict_scopes:
            raise ScopeError.outside_scope(registration.token)
        return scope

    def dependency_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        return scope

    def disposal_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        return scope


class TransientPolicy:
    lifecycle = Lifecycle.TRANSIENT

    def cache_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> None:
        return None

    def dependency_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope:
        return scope

    def disposal_scope(
        self, registration: Registration, scope: Scope, settings: ContainerSettings
    ) -> Scope | None:
        # Transient lifetimes belong to the caller unless tracking is switched on
        return scope if settings.track_transients else None


LifecyclePolicy = SingletonPolicy | ScopedPolicy | TransientPolicy

LIFECYCLE_POLICY_MAP: dict[Lifecycle, LifecyclePolicy] = {
    Lifecycle.SINGLETON: SingletonPolicy(),
    Lifecycle.SCOPED: ScopedPolicy(),
    Lifecycle.TRANSIENT: TransientPolicy(),
}
