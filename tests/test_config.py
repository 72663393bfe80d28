"""Tests for AgentConfig, TransportSettings and load_settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from turnloop import AgentConfig, ConfigError
from turnloop.models.config import (
    DEFAULT_GREETING,
    DEFAULT_MAX_TOKENS,
    Provider,
    TransportSettings,
    load_settings,
)


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.max_tokens == DEFAULT_MAX_TOKENS == 1024
        assert config.model is None
        assert config.max_tool_workers is None
        assert config.greeting == DEFAULT_GREETING

    @pytest.mark.parametrize(
        "field, value",
        [("max_tokens", 0), ("max_tokens", -5), ("max_tool_workers", 0), ("poll_interval", 0)],
    )
    def test_rejects_non_positive(self, field, value):
        with pytest.raises(ValidationError):
            AgentConfig(**{field: value})

    def test_frozen(self):
        config = AgentConfig()
        with pytest.raises(ValidationError):
            config.max_tokens = 10  # type: ignore[misc]


class TestLoadSettings:
    def test_empty_environment(self):
        settings = load_settings({})
        assert settings == TransportSettings()
        assert settings.provider == Provider.ANTHROPIC
        assert settings.log_level == "WARNING"

    def test_reads_all_variables(self):
        settings = load_settings({
            "TURNLOOP_PROVIDER": "openai",
            "TURNLOOP_MODEL": "gpt-4o",
            "TURNLOOP_BASE_URL": "http://localhost:8000/v1",
            "TURNLOOP_MAX_TOKENS": "2048",
            "TURNLOOP_LOG_LEVEL": "debug",
        })
        assert settings.provider == Provider.OPENAI
        assert settings.model == "gpt-4o"
        assert settings.base_url == "http://localhost:8000/v1"
        assert settings.max_tokens == 2048
        assert settings.log_level == "DEBUG"

    def test_empty_values_ignored(self):
        assert load_settings({"TURNLOOP_MODEL": ""}).model is None

    def test_unrelated_variables_ignored(self):
        assert load_settings({"HOME": "/root"}) == TransportSettings()

    @pytest.mark.parametrize(
        "var, value",
        [
            ("TURNLOOP_PROVIDER", "gemini"),
            ("TURNLOOP_MAX_TOKENS", "lots"),
            ("TURNLOOP_MAX_TOKENS", "0"),
            ("TURNLOOP_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values_raise_config_error(self, var, value):
        with pytest.raises(ConfigError, match="Invalid turnloop configuration"):
            load_settings({var: value})

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("TURNLOOP_MODEL", "from-os")
        assert load_settings().model == "from-os"
