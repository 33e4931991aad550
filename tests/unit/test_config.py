"""Unit tests for ClientConfig.

Tests defaults, environment loading and validation.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from knot.client.config import DEFAULT_HOST, ClientConfig, get_client_config

_ENV_KEYS = ("OLLAMA_HOST", "OLLAMA_CONNECT_TIMEOUT", "OLLAMA_READ_TIMEOUT", "OLLAMA_MODEL")


@pytest.fixture
def clean_env():
    """Remove Ollama settings from the environment for the test."""
    with patch.dict("os.environ", {}):
        for key in _ENV_KEYS:
            os.environ.pop(key, None)
        yield


class TestClientConfig:
    """Tests for ClientConfig validation."""

    def test_defaults(self, clean_env: None) -> None:
        """Config falls back to the local default server."""
        config = ClientConfig()

        assert config.host == DEFAULT_HOST == "http://localhost:11434"
        assert config.connect_timeout == 10.0
        assert config.read_timeout is None
        assert config.default_model is None

    def test_reads_environment(self, clean_env: None) -> None:
        """Values come from OLLAMA_* variables."""
        with patch.dict(
            "os.environ",
            {
                "OLLAMA_HOST": "http://gpu-box:11434",
                "OLLAMA_CONNECT_TIMEOUT": "2.5",
                "OLLAMA_READ_TIMEOUT": "60",
                "OLLAMA_MODEL": "llama3:latest",
            },
        ):
            config = get_client_config()

        assert config.host == "http://gpu-box:11434"
        assert config.connect_timeout == 2.5
        assert config.read_timeout == 60.0
        assert config.default_model == "llama3:latest"

    def test_host_trailing_slash_is_removed(self) -> None:
        config = ClientConfig(host="  http://localhost:11434/  ")

        assert config.host == "http://localhost:11434"

    def test_host_must_be_http_url(self) -> None:
        """Config rejects hosts without an http(s) scheme."""
        with pytest.raises(ValidationError) as exc_info:
            ClientConfig(host="localhost:11434")

        assert "OLLAMA_HOST" in str(exc_info.value)

    def test_rejects_non_positive_connect_timeout(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ClientConfig(connect_timeout=0)

        assert "connect_timeout" in str(exc_info.value)

    def test_timeout_has_no_read_deadline_by_default(self, clean_env: None) -> None:
        """Only connecting is bounded unless a read timeout is configured."""
        timeout = ClientConfig().timeout()

        assert timeout.connect == 10.0
        assert timeout.read is None
        assert timeout.write is None
        assert timeout.pool is None

    def test_timeout_uses_read_timeout(self) -> None:
        timeout = ClientConfig(connect_timeout=1.0, read_timeout=30.0).timeout()

        assert timeout.connect == 1.0
        assert timeout.read == 30.0
