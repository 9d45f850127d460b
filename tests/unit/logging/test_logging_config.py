import io
import json
import logging

import pytest
from pydantic import ValidationError

from grafter.logging import LoggingSettings, LogLevel, configure_logging, get_logger


@pytest.fixture
def restore_grafter_logger():
    logger = logging.getLogger("grafter")
    level = logger.level
    handlers = list(logger.handlers)
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def test_logging_settings_defaults():
    settings = LoggingSettings()
    assert settings.level == "INFO"
    assert settings.json_format is False
    assert settings.include_timestamp is True
    assert settings.include_level is True


def test_logging_settings_from_env(monkeypatch):
    monkeypatch.setenv("GRAFTER_LOGGING_LEVEL", "debug")
    monkeypatch.setenv("GRAFTER_LOGGING_JSON_FORMAT", "true")
    settings = LoggingSettings.load()
    assert settings.level == "DEBUG"
    assert settings.json_format is True


def test_logging_settings_invalid_level():
    with pytest.raises(ValidationError):
        LoggingSettings(level="LOUD")


def test_log_level_conversion():
    assert LogLevel.from_string("warning") is LogLevel.WARNING
    assert LogLevel(" debug ") is LogLevel.DEBUG
    assert LogLevel.WARNING.to_stdlib_level() == logging.WARNING
    assert LogLevel.CRITICAL.to_stdlib_level() == logging.CRITICAL
    with pytest.raises(ValueError):
        LogLevel.from_string("verbose")


def test_configure_logging_writes_json(restore_grafter_logger):
    stream = io.StringIO()
    settings = LoggingSettings(level="DEBUG", json_format=True, include_timestamp=False)
    logger = configure_logging(settings, stream=stream)
    assert logger is restore_grafter_logger
    assert logger.level == logging.DEBUG

    get_logger("injection").debug("resolved", extra={"token": "db"})
    data = json.loads(stream.getvalue().strip())
    assert data["message"] == "resolved"
    assert data["logger"] == "grafter.injection"
    assert data["token"] == "db"
    assert data["level"] == "DEBUG"


def test_configure_logging_replaces_its_handler(restore_grafter_logger):
    configure_logging(LoggingSettings(), stream=io.StringIO())
    configure_logging(LoggingSettings(), stream=io.StringIO())
    installed = [
        handler
        for handler in restore_grafter_logger.handlers
        if getattr(handler, "_grafter_handler", False)
    ]
    assert len(installed) == 1


def test_get_logger_nests_under_package():
    assert get_logger("grafter.injection").name == "grafter.injection"
    assert get_logger("app").name == "grafter.app"
    assert get_logger("grafter").name == "grafter"
