"""Tests for optional environment settings."""

import pytest

from valkyrie.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("VALKYRIE_ENV", "VALKYRIE_LOG_LEVEL", "VALKYRIE_ROLE_TIERS"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings.from_env()

    assert settings.environment == "development"
    assert settings.role_tiers == ["Friends", "Crows", "Server Mgt"]
    assert settings.cooldown_seconds == 30
    assert settings.log_level == "DEBUG"
    assert settings.log_file_enabled is False


def test_production_logging_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VALKYRIE_ENV", "production")
    monkeypatch.delenv("VALKYRIE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("VALKYRIE_LOG_FILE_ENABLED", raising=False)

    settings = Settings.from_env()

    assert settings.is_production
    assert settings.log_level == "INFO"
    assert settings.log_file_enabled is True


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VALKYRIE_COOLDOWN_SECONDS", "45")
    monkeypatch.setenv("VALKYRIE_STATUS_EDIT_INTERVAL", "2.5")
    monkeypatch.setenv("VALKYRIE_ROLE_TIERS", "Members, Mods ,Admins")
    monkeypatch.setenv("VALKYRIE_STRICT_HOST_KEY_CHECKING", "false")
    monkeypatch.setenv("VALKYRIE_KNOWN_HOSTS", "/etc/ssh/known_hosts")

    settings = Settings.from_env()

    assert settings.cooldown_seconds == 45
    assert settings.status_edit_interval == 2.5
    assert settings.role_tiers == ["Members", "Mods", "Admins"]
    assert settings.strict_host_key_checking is False
    assert settings.known_hosts == "/etc/ssh/known_hosts"


def test_invalid_int_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VALKYRIE_VERIFY_DELAY", "soon")

    assert Settings.from_env().verify_delay == 10


def test_console_and_file_log_levels(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test console switch and per-handler levels are read from the environment."""
    monkeypatch.setenv("VALKYRIE_LOG_CONSOLE_ENABLED", "false")
    monkeypatch.setenv("VALKYRIE_LOG_CONSOLE_LEVEL", "warning")
    monkeypatch.delenv("VALKYRIE_LOG_FILE_LEVEL", raising=False)

    settings = Settings.from_env()

    assert settings.log_console_enabled is False
    assert settings.log_console_level == "WARNING"
    assert settings.log_file_level is None
