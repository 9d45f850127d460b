# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
grafter: an in-process dependency injection container.

Register how each token is built, then resolve object graphs with
Transient, Singleton or Scoped sharing and ordered disposal.
"""

from __future__ import annotations

from grafter.config import ContainerSettings
from grafter.errors import GrafterError
from grafter.injection import (
    AsyncFactoryError,
    CircularDependencyError,
    Container,
    DisposalError,
    DuplicateRegistrationError,
    FactoryError,
    InjectionError,
    Lifecycle,
    RegistrationFrozenError,
    Scope,
    ScopeDisposedError,
    ScopeError,
    UnknownTokenError,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncFactoryError",
    "CircularDependencyError",
    "Container",
    "ContainerSettings",
    "DisposalError",
    "DuplicateRegistrationError",
    "FactoryError",
    "GrafterError",
    "InjectionError",
    "Lifecycle",
    "RegistrationFrozenError",
    "Scope",
    "ScopeDisposedError",
    "ScopeError",
    "UnknownTokenError",
]
