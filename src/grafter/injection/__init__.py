# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Public API for the grafter DI system.
"""

from __future__ import annotations

from grafter.injection.container import Container
from grafter.injection.disposal import DisposalCoordinator
from grafter.injection.errors import (
    AsyncFactoryError,
    CircularDependencyError,
    DisposalError,
    DuplicateRegistrationError,
    FactoryError,
    InjectionError,
    RegistrationError,
    RegistrationFrozenError,
    ScopeDisposedError,
    ScopeError,
    UnknownTokenError,
)
from grafter.injection.lifecycle import Lifecycle
from grafter.injection.registration import Registration
from grafter.injection.registry import Registry
from grafter.injection.resolution import Resolver
from grafter.injection.scope import Scope

__all__ = [
    "AsyncFactoryError",
    "CircularDependencyError",
    "Container",
    "DisposalCoordinator",
    "DisposalError",
    "DuplicateRegistrationError",
    "FactoryError",
    "InjectionError",
    "Lifecycle",
    "Registration",
    "RegistrationError",
    "RegistrationFrozenError",
    "Registry",
    "Resolver",
    "Scope",
    "ScopeDisposedError",
    "ScopeError",
    "UnknownTokenError",
]
