# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: grafter
"""
Configuration for grafter.
"""

from grafter.config.settings import ContainerSettings

__all__ = ["ContainerSettings"]
