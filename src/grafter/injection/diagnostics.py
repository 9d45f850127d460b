# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Container diagnostics.

Helpers for capturing container state for error context and debugging.
They only read state; nothing here constructs instances.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import TYPE_CHECKING, Any

from grafter.injection.registration import token_name

if TYPE_CHECKING:
    from grafter.errors.base import GrafterError
    from grafter.injection.registration import Registration
    from grafter.injection.registry import Registry
    from grafter.injection.scope import Scope


def visible_registrations(
    registry: Registry, scope: Scope | None = None
) -> dict[Hashable, Registration]:
    """Registrations a scope would resolve, nearest override winning."""
    visible: dict[Hashable, Registration] = {
        registration.token: registration for registration in registry.registrations()
    }
    if scope is not None:
        for scope_registry in reversed(scope.override_chain()):
            for registration in scope_registry.registrations():
                visible[registration.token] = registration
    return visible


def dependency_graph(
    registry: Registry, scope: Scope | None = None
) -> dict[str, list[str]]:
    """Map each visible token name to the names of its declared dependencies."""
    return {
        token_name(token): [token_name(dep) for dep in registration.dependencies]
        for token, registration in visible_registrations(registry, scope).items()
    }


def describe_scope(scope: Scope) -> dict[str, Any]:
    """Snapshot of a scope's state."""
    return {
        "scope_id": scope.id,
        "parent_id": scope.parent.id if scope.parent is not None else None,
        "depth": scope.depth,
        "disposed": scope.disposed,
        "cached_tokens": sorted(token_name(token) for token in scope.cached_tokens()),
        "overrides": sorted(token_name(token) for token in scope.overrides.tokens()),
        "disposables": len(scope._disposables),
    }


def capture_state(
    error: GrafterError, registry: Registry, scope: Scope | None = None
) -> GrafterError:
    """Enrich an error with the tokens visible from ``scope``.

    Returns:
        The same error, for chaining
    """
    tokens = sorted(token_name(token) for token in visible_registrations(registry, scope))
    error.add_context("registered_tokens", tokens)
    if scope is not None:
        error.add_context("scope_id", scope.id)
    return error
