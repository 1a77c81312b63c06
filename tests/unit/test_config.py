"""
Unit tests for ServerConfig.
"""

import logging

import pytest

from httptestserver.config import ServerConfig
from httptestserver.errors import ConfigurationError


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        """Test default values."""
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 0
        assert config.log_level == "WARNING"
        config.validate()

    def test_logging_level(self):
        """Test level name conversion."""
        assert ServerConfig(log_level="debug").logging_level == logging.DEBUG

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"peek_timeout": 0},
        {"accept_poll_interval": -1},
        {"drain_timeout": 0},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, overrides: dict):
        """Test invalid values."""
        with pytest.raises(ConfigurationError):
            ServerConfig(**overrides).validate()

    def test_timeout_none(self):
        """Test that no connection timeout is allowed."""
        ServerConfig(timeout=None).validate()


class TestServerConfigFromEnv:
    """Tests for ServerConfig.from_env."""

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch):
        """Test reading environment variables."""
        monkeypatch.setenv("HTTP_TEST_SERVER_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_TEST_SERVER_PORT", "8080")
        monkeypatch.setenv("HTTP_TEST_SERVER_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTP_TEST_SERVER_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch: pytest.MonkeyPatch):
        """Test defaults when nothing is set."""
        for name in ("HOST", "PORT", "TIMEOUT", "LOG_LEVEL"):
            monkeypatch.delenv(f"HTTP_TEST_SERVER_{name}", raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_from_env_invalid(self, monkeypatch: pytest.MonkeyPatch):
        """Test a non-numeric port."""
        monkeypatch.setenv("HTTP_TEST_SERVER_PORT", "eighty")

        with pytest.raises(ConfigurationError):
            ServerConfig.from_env()
