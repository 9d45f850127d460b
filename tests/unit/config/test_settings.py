import pytest
from pydantic import ValidationError

from grafter.config import ContainerSettings


def test_defaults():
    settings = ContainerSettings()
    assert settings.validate_on_freeze is True
    assert settings.track_transients is False
    assert settings.strict_scopes is False
    assert settings.drain_timeout is None


def test_load_from_env(monkeypatch):
    monkeypatch.setenv("GRAFTER_VALIDATE_ON_FREEZE", "false")
    monkeypatch.setenv("GRAFTER_TRACK_TRANSIENTS", "1")
    monkeypatch.setenv("GRAFTER_STRICT_SCOPES", "yes")
    monkeypatch.setenv("GRAFTER_DRAIN_TIMEOUT", "2.5")
    settings = ContainerSettings.load()
    assert settings.validate_on_freeze is False
    assert settings.track_transients is True
    assert settings.strict_scopes is True
    assert settings.drain_timeout == 2.5


def test_logging_variables_are_ignored(monkeypatch):
    monkeypatch.setenv("GRAFTER_LOGGING_LEVEL", "DEBUG")
    ContainerSettings()


def test_drain_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        ContainerSettings(drain_timeout=0)
    with pytest.raises(ValidationError):
        ContainerSettings(drain_timeout=-1.0)


def test_settings_are_frozen():
    settings = ContainerSettings()
    with pytest.raises(ValidationError):
        settings.track_transients = True
