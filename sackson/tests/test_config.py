"""
Tests for environment configuration.
"""

import pytest

from ..config import ClientConfig, DEFAULT_SERVER_URL
from ..errors import ConfigError


class TestClientConfig:
    """Tests for ClientConfig.from_env."""

    def test_defaults(self):
        config = ClientConfig.from_env({})
        assert config.server_url == DEFAULT_SERVER_URL
        assert config.max_buy_per_turn == 3
        assert config.open_timeout == 10.0
        assert config.log_level == "WARNING"

    def test_overrides(self):
        config = ClientConfig.from_env({
            "SACKSON_SERVER_URL": "ws://games.example:9000/join",
            "SACKSON_MAX_BUY": "5",
            "SACKSON_OPEN_TIMEOUT": "2.5",
            "SACKSON_LOG_LEVEL": "debug",
        })
        assert config.server_url == "ws://games.example:9000/join"
        assert config.max_buy_per_turn == 5
        assert config.open_timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_blank_uses_default(self):
        assert ClientConfig.from_env({"SACKSON_MAX_BUY": " "}).max_buy_per_turn == 3

    @pytest.mark.parametrize("env", [
        {"SACKSON_MAX_BUY": "three"},
        {"SACKSON_MAX_BUY": "-1"},
        {"SACKSON_OPEN_TIMEOUT": "soon"},
        {"SACKSON_OPEN_TIMEOUT": "0"},
    ])
    def test_invalid(self, env):
        with pytest.raises(ConfigError):
            ClientConfig.from_env(env)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SACKSON_MAX_BUY", "1")
        assert ClientConfig.from_env().max_buy_per_turn == 1
