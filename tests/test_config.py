"""Tests for configuration helpers."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from slack_jira_bot import config  # noqa: E402

REQUIRED = (
    "SLACK_BOT_TOKEN",
    "SLACK_APP_TOKEN",
    "JIRA_URL",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_PROJECT",
)


def _seed_env(monkeypatch):
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-token")
    monkeypatch.setenv("SLACK_APP_TOKEN", "xapp-token")
    monkeypatch.setenv("JIRA_URL", "https://jira.example.com/")
    monkeypatch.setenv("JIRA_USERNAME", "bot@example.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "secret")
    monkeypatch.setenv("JIRA_PROJECT", "OPS")
    for var in ("LOG_LEVEL", "GRACE_PERIOD_SECONDS", "FILING_TIMEOUT_SECONDS", "DEDUP_WINDOW_SECONDS", "HEALTH_PORT"):
        monkeypatch.delenv(var, raising=False)
    config.get_settings.cache_clear()


def test_get_settings_parses_expected_fields(monkeypatch):
    _seed_env(monkeypatch)

    settings = config.get_settings()

    assert settings.bot_token == "xoxb-token"
    assert settings.app_token == "xapp-token"
    assert settings.jira_url == "https://jira.example.com"
    assert settings.jira_project == "OPS"
    assert settings.log_level == "INFO"
    assert settings.grace_period_seconds == 180
    assert settings.filing_timeout_seconds == 30
    assert settings.dedup_window_seconds == 3600
    assert settings.health_port == 8888

    config.get_settings.cache_clear()


def test_optional_overrides_are_applied(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("GRACE_PERIOD_SECONDS", "5")
    monkeypatch.setenv("HEALTH_PORT", "9000")

    settings = config.get_settings()

    assert settings.log_level == "DEBUG"
    assert settings.grace_period_seconds == 5
    assert settings.health_port == 9000

    config.get_settings.cache_clear()


def test_missing_environment_variables_raise_runtime_error(monkeypatch):
    for var in REQUIRED:
        monkeypatch.delenv(var, raising=False)
    config.get_settings.cache_clear()

    with pytest.raises(RuntimeError) as err:
        config.get_settings()

    message = str(err.value)
    for var in REQUIRED:
        assert var in message

    config.get_settings.cache_clear()


@pytest.mark.parametrize(
    ("name", "value"),
    [("LOG_LEVEL", "chatty"), ("GRACE_PERIOD_SECONDS", "0"), ("DEDUP_WINDOW_SECONDS", "-1")],
)
def test_invalid_values_raise_runtime_error(monkeypatch, name, value):
    _seed_env(monkeypatch)
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError) as err:
        config.get_settings()

    assert "Invalid configuration" in str(err.value)

    config.get_settings.cache_clear()
