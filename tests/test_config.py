"""Tests for settings loading, validation and logging setup."""

import logging
import os
from importlib import reload
from pathlib import Path
from unittest.mock import patch

import pytest

from helpdesk import config as config_module
from helpdesk.config import DEFAULT_ADMIN_PASSWORD, LOG_DATE_FORMAT, LOG_FORMAT, Config


@pytest.fixture(autouse=True)
def restore_config_module():
    """Reload the config module from the real environment after each test."""
    yield
    reload(config_module)


def reload_with(env: dict[str, str]) -> type[Config]:
    with patch.dict(os.environ, env, clear=True):
        reload(config_module)
    return config_module.Config


def test_admin_password_is_read_at_call_time():
    with patch.dict(os.environ, {"ADMIN_PASSWORD": "changed"}):
        assert Config.get_admin_password() == "changed"
    with patch.dict(os.environ, {}, clear=True):
        assert Config.get_admin_password() == DEFAULT_ADMIN_PASSWORD


def test_defaults_without_environment():
    settings = reload_with({})

    assert settings.KB_BACKEND == "sqlite"
    assert settings.KB_DB_PATH == Path("data/helpdesk.db")
    assert settings.KB_API_BASE_URL == "http://localhost:3001"
    assert settings.KB_API_TIMEOUT == 5.0
    assert settings.KB_STATIC_FALLBACK is True
    assert settings.KB_SEED_DEFAULTS is True
    assert settings.TYPING_DELAY_SECONDS == 0.8
    assert settings.ADMIN_EMAIL == "admin@example.com"
    assert settings.LOG_LEVEL == "INFO"


@pytest.mark.parametrize(
    ("env_var", "raw", "attribute", "expected"),
    [
        ("KB_BACKEND", "HTTP", "KB_BACKEND", "http"),
        ("KB_DB_PATH", "/srv/kb.db", "KB_DB_PATH", Path("/srv/kb.db")),
        ("KB_API_TIMEOUT", "2.5", "KB_API_TIMEOUT", 2.5),
        ("KB_STATIC_FALLBACK", "off", "KB_STATIC_FALLBACK", False),
        ("KB_SEED_DEFAULTS", "0", "KB_SEED_DEFAULTS", False),
        ("TYPING_DELAY_SECONDS", "0", "TYPING_DELAY_SECONDS", 0.0),
        ("LOG_LEVEL", "debug", "LOG_LEVEL", "DEBUG"),
        ("HTTPX_LOG_LEVEL", "info", "HTTPX_LOG_LEVEL", "INFO"),
        ("API_USER_AGENT", "Probe/2", "API_USER_AGENT", "Probe/2"),
    ],
)
def test_environment_overrides(env_var, raw, attribute, expected):
    settings = reload_with({env_var: raw})

    assert getattr(settings, attribute) == expected


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
def test_truthy_flags(raw):
    assert reload_with({"KB_STATIC_FALLBACK": raw}).KB_STATIC_FALLBACK is True


@pytest.mark.parametrize("env_var", ["KB_API_TIMEOUT", "TYPING_DELAY_SECONDS"])
def test_non_numeric_seconds_fail_at_import(env_var):
    with (
        patch.dict(os.environ, {env_var: "soon"}),
        pytest.raises(ValueError, match="could not convert string to float"),
    ):
        reload(config_module)


def test_dotenv_skipped_when_file_missing():
    with (
        patch.object(Path, "exists", return_value=False),
        patch("helpdesk.config.load_dotenv") as mock_load,
    ):
        reload(config_module)

    mock_load.assert_not_called()


@pytest.mark.parametrize("backend", ["sqlite", "http", "static"])
def test_validate_accepts_supported_backends(backend):
    with (
        patch.object(Config, "KB_BACKEND", backend),
        patch.object(Config, "ENVIRONMENT", "development"),
    ):
        Config.validate()


def test_validate_rejects_unknown_backend():
    with (
        patch.object(Config, "KB_BACKEND", "mongodb"),
        pytest.raises(ValueError, match="Unsupported KB_BACKEND 'mongodb'"),
    ):
        Config.validate()


@pytest.mark.parametrize(
    ("environment", "password", "allowed"),
    [
        ("production", DEFAULT_ADMIN_PASSWORD, False),
        ("Production ", DEFAULT_ADMIN_PASSWORD, False),
        ("production", "long-random-value", True),
        ("development", DEFAULT_ADMIN_PASSWORD, True),
        ("staging", DEFAULT_ADMIN_PASSWORD, True),
    ],
)
def test_default_password_only_rejected_in_production(environment, password, allowed):
    with (
        patch.object(Config, "KB_BACKEND", "sqlite"),
        patch.object(Config, "ENVIRONMENT", environment),
        patch.object(Config, "get_admin_password", return_value=password),
    ):
        if allowed:
            Config.validate()
        else:
            with pytest.raises(ValueError, match="ADMIN_PASSWORD must be changed"):
                Config.validate()


@pytest.mark.parametrize(
    ("app_level", "httpx_level", "expected_app", "expected_httpx"),
    [
        ("WARNING", "DEBUG", logging.WARNING, logging.DEBUG),
        ("NOPE", "NOPE", logging.INFO, logging.WARNING),
    ],
)
def test_setup_logging(app_level, httpx_level, expected_app, expected_httpx):
    with (
        patch.object(Config, "LOG_LEVEL", app_level),
        patch.object(Config, "HTTPX_LOG_LEVEL", httpx_level),
        patch("helpdesk.config.logging.basicConfig") as basic_config,
        patch("helpdesk.config.logging.getLogger") as get_logger,
    ):
        Config.setup_logging()

    basic_config.assert_called_once_with(
        level=expected_app, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT
    )
    get_logger.assert_called_once_with("httpx")
    get_logger.return_value.setLevel.assert_called_once_with(expected_httpx)


def test_get_logger_uses_module_name():
    assert Config.get_logger("helpdesk.matcher").name == "helpdesk.matcher"


@pytest.mark.parametrize(
    ("user_agent", "expected"),
    [
        ("HelpdeskBot/9", {"Accept": "application/json", "User-Agent": "HelpdeskBot/9"}),
        ("", {"Accept": "application/json"}),
    ],
)
def test_api_headers(user_agent, expected):
    with patch.object(Config, "API_USER_AGENT", user_agent):
        assert Config.get_api_headers() == expected
