"""Top-level pytest configuration for grafter."""

import os

import pytest

# Import for side effects so the error registry is populated
import grafter.injection.errors  # noqa: F401
from grafter.config import ContainerSettings
from grafter.injection.container import Container


@pytest.fixture(autouse=True)
def clear_grafter_env(monkeypatch):
    """Keep GRAFTER_* variables from the developer's shell out of every test."""
    for key in list(os.environ):
        if key.startswith("GRAFTER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    return ContainerSettings()


@pytest.fixture
def container(settings):
    container = Container(settings)
    yield container
    container.dispose()
