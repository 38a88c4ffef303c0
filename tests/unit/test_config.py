"""Unit tests for RconConfig."""

import pytest

from jsonapi_rcon.config import DEFAULT_PORT, RconConfig
from jsonapi_rcon.keys import Credentials


class TestDefaults:
    """Test default configuration values."""

    def test_timing_defaults(self):
        config = RconConfig()

        assert config.command_timeout == 1.0
        assert config.reconnect_delay == 5.0
        assert config.port == DEFAULT_PORT

    def test_behaviour_defaults(self):
        config = RconConfig()

        assert config.surface_remote_errors is True
        assert config.fail_pending_on_close is True
        assert config.resubscribe_on_reconnect is True

    def test_url(self):
        config = RconConfig(host="mc.example.org", port=25566)

        assert config.url == "ws://mc.example.org:25566/api/2/websocket"

    def test_credentials(self):
        config = RconConfig(username="u", password="p", salt="s")

        assert config.credentials == Credentials(username="u", password="p", salt="s")

    def test_repr_hides_password(self):
        config = RconConfig(password="topsecret")

        assert "topsecret" not in repr(config)


class TestFromEnv:
    """Test loading configuration from the environment."""

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("JSONAPI_RCON_HOST", "mc.example.org")
        monkeypatch.setenv("JSONAPI_RCON_PORT", "25566")
        monkeypatch.setenv("JSONAPI_RCON_USERNAME", "admin")
        monkeypatch.setenv("JSONAPI_RCON_PASSWORD", "secret")
        monkeypatch.setenv("JSONAPI_RCON_SALT", "pepper")
        monkeypatch.setenv("JSONAPI_RCON_COMMAND_TIMEOUT", "2.5")
        monkeypatch.setenv("JSONAPI_RCON_RECONNECT_DELAY", "10")

        config = RconConfig.from_env()

        assert config.host == "mc.example.org"
        assert config.port == 25566
        assert config.username == "admin"
        assert config.password == "secret"
        assert config.salt == "pepper"
        assert config.command_timeout == 2.5
        assert config.reconnect_delay == 10.0

    def test_missing_variables_use_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "USERNAME", "PASSWORD", "SALT"):
            monkeypatch.delenv(f"JSONAPI_RCON_{name}", raising=False)

        config = RconConfig.from_env()

        assert config.host == "localhost"
        assert config.port == DEFAULT_PORT

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("JSONAPI_RCON_HOST", "from-env")

        config = RconConfig.from_env(host="explicit", port=None)

        assert config.host == "explicit"
        assert config.port == DEFAULT_PORT

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("MC_HOST", "custom")

        assert RconConfig.from_env(prefix="MC_").host == "custom"

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("JSONAPI_RCON_PORT", "not-a-port")

        with pytest.raises(ValueError):
            RconConfig.from_env()
