"""Tests for required configuration and .env loading."""

import os
from pathlib import Path

import pytest

from valkyrie.config import REQUIRED_ENV_VARS, Config, ConfigurationError, load_environment

VALID_ENV = {
    "DISCORD_TOKEN": "token",
    "ALLOWED_GUILDS": "111, 222",
    "TERRARIA_GAME_SERVER_IP": "10.0.0.5",
    "TERRARIA_SSH_USER": "steam",
    "TERRARIA_SSH_PRIVATE_KEY_PATH": "/keys/terraria",
    "TERRARIA_PUBLIC_IP": "203.0.113.5",
    "TERRARIA_PORT": "7777",
    "TERRARIA_PASS": "hunter2",
    "MINECRAFT_GAME_SERVER_IP": "10.0.0.6",
    "MINECRAFT_SSH_USER": "mc",
    "MINECRAFT_SSH_PRIVATE_KEY_PATH": "/keys/minecraft",
    "MINECRAFT_PUBLIC_IP": "203.0.113.6",
    "MINECRAFT_PORT": "19132",
    "MINECRAFT_PASS": "creeper",
}


@pytest.fixture
def valid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in VALID_ENV.items():
        monkeypatch.setenv(key, value)


def test_required_vars_cover_both_servers() -> None:
    assert set(REQUIRED_ENV_VARS) == set(VALID_ENV)


def test_from_env(valid_env: None) -> None:
    config = Config.from_env()

    assert config.discord_token == "token"
    assert config.allowed_guilds == [111, 222]
    assert config.terraria.port == 7777
    assert config.terraria.target.host == "10.0.0.5"
    assert config.terraria.target.credential_reference == "/keys/terraria"
    assert config.minecraft.password == "creeper"
    assert config.minecraft.target.username == "mc"


def test_missing_variables_listed(valid_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISCORD_TOKEN")
    monkeypatch.setenv("MINECRAFT_PASS", "  ")

    with pytest.raises(ConfigurationError) as exc_info:
        Config.from_env()

    message = str(exc_info.value)
    assert "DISCORD_TOKEN" in message
    assert "MINECRAFT_PASS" in message


def test_malformed_values_all_reported(valid_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALLOWED_GUILDS", "111,abc")
    monkeypatch.setenv("TERRARIA_PORT", "seven")

    with pytest.raises(ConfigurationError) as exc_info:
        Config.from_env()

    assert len(exc_info.value.problems) == 2
    assert any("abc" in problem for problem in exc_info.value.problems)
    assert any("TERRARIA_PORT" in problem for problem in exc_info.value.problems)


def test_load_environment_layers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VALKYRIE_ENV", "staging")
    monkeypatch.delenv("VALKYRIE_TEST_LAYER", raising=False)
    (tmp_path / ".env").write_text("VALKYRIE_TEST_LAYER=base\n")
    (tmp_path / ".env.staging").write_text("VALKYRIE_TEST_LAYER=staging\n")
    (tmp_path / ".env.staging.local").write_text("VALKYRIE_TEST_LAYER=staging-local\n")

    try:
        loaded = load_environment(tmp_path)

        assert [p.name for p in loaded] == [".env", ".env.staging", ".env.staging.local"]
        assert os.environ["VALKYRIE_TEST_LAYER"] == "staging-local"
    finally:
        os.environ.pop("VALKYRIE_TEST_LAYER", None)
