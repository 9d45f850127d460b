# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Container settings.

Settings are read from ``GRAFTER_*`` environment variables; containers also
accept an explicit instance.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContainerSettings(BaseSettings):
    """Behavioural switches for a :class:`grafter.Container`."""

    model_config = SettingsConfigDict(
        env_prefix="GRAFTER_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    validate_on_freeze: bool = Field(
        default=True,
        description="Check the base registration graph for unknown dependencies and cycles when it is frozen",
    )
    track_transients: bool = Field(
        default=False,
        description="Track disposable transient instances in the scope that resolved them",
    )
    strict_scopes: bool = Field(
        default=False,
        description=(
            "Reject Scoped resolution against the root scope and resolve Singleton "
            "dependencies from the Singleton's own scope"
        ),
    )
    drain_timeout: float | None = Field(
        default=None,
        description="Seconds to wait for in-flight resolutions when a scope is disposed",
    )

    @field_validator("drain_timeout")
    @classmethod
    def validate_drain_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("drain_timeout must be positive")
        return v

    @classmethod
    def load(cls) -> ContainerSettings:
        """Load container settings from environment variables or defaults."""
        return cls()
