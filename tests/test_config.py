"""
Tests for environment configuration.
"""
import pytest

from agentos_sdk.config import AgentOSSettings, get_server_signer_private_key, is_replay_required
from agentos_sdk.exceptions import ConfigError
from conftest import SERVER_KEY


def test_replay_required_defaults_to_strict():
    assert is_replay_required() is True


@pytest.mark.parametrize("value", ["0", "false", "FALSE", " no ", "off"])
def test_replay_fail_open_opt_in(monkeypatch, value):
    monkeypatch.setenv("AGENTOS_REPLAY_REQUIRED", value)
    assert is_replay_required() is False


@pytest.mark.parametrize("value", ["1", "true", "yes", "maybe"])
def test_replay_strict_values(monkeypatch, value):
    monkeypatch.setenv("AGENTOS_REPLAY_REQUIRED", value)
    assert is_replay_required() is True


def test_server_signer_key(monkeypatch):
    assert get_server_signer_private_key() is None
    monkeypatch.setenv("AGENTOS_SERVER_SIGNER_PRIVATE_KEY", f"  {SERVER_KEY}\n")
    assert get_server_signer_private_key() == SERVER_KEY


def test_from_env_defaults():
    settings = AgentOSSettings.from_env()
    assert settings.replay_strict is True
    assert settings.server_signer_enabled is False
    assert settings.rpc_url == "http://127.0.0.1:8545"
    assert settings.chain_id == 31337
    assert settings.replay_store == "memory"
    assert settings.timestamp_tolerance_seconds == 300
    assert settings.replay_ttl_seconds == 660


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("AGENTOS_REPLAY_REQUIRED", "false")
    monkeypatch.setenv("AGENTOS_SERVER_SIGNER_PRIVATE_KEY", SERVER_KEY)
    monkeypatch.setenv("AGENTOS_RPC_URL", "https://rpc.example.com")
    monkeypatch.setenv("AGENTOS_CHAIN_ID", "84532")
    monkeypatch.setenv("AGENTOS_REPLAY_STORE", "REDIS")
    monkeypatch.setenv("AGENTOS_REDIS_URL", "redis://cache:6379/0")
    monkeypatch.setenv("AGENTOS_TIMESTAMP_TOLERANCE_SECONDS", "60")

    settings = AgentOSSettings.from_env()
    assert settings.replay_strict is False
    assert settings.server_signer_enabled is True
    assert settings.rpc_url == "https://rpc.example.com"
    assert settings.chain_id == 84532
    assert settings.replay_store == "redis"
    assert settings.redis_url == "redis://cache:6379/0"
    assert settings.replay_ttl_seconds == 180


def test_from_env_bad_number(monkeypatch):
    monkeypatch.setenv("AGENTOS_CHAIN_ID", "mainnet")
    with pytest.raises(ConfigError):
        AgentOSSettings.from_env()


def test_key_never_in_repr():
    settings = AgentOSSettings(server_signer_private_key=SERVER_KEY, redis_url="redis://:secret@cache")
    assert SERVER_KEY not in repr(settings)
    assert "secret" not in repr(settings)


def test_require_server_signer_key():
    assert AgentOSSettings(server_signer_private_key=SERVER_KEY).require_server_signer_key() == SERVER_KEY
    with pytest.raises(ConfigError, match="AGENTOS_SERVER_SIGNER_PRIVATE_KEY"):
        AgentOSSettings(server_signer_private_key="0x1234").require_server_signer_key()
