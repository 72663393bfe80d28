"""Configuration models for turnloop.

AgentConfig holds per-agent loop settings.
TransportSettings holds the inference transport selection, read from the
environment by load_settings().
"""

from __future__ import annotations

import enum
import os
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from turnloop.exceptions import ConfigError

DEFAULT_MAX_TOKENS = 1024
DEFAULT_GREETING = "Chat with Claude (use 'ctrl-c' to quit)"


class Provider(str, enum.Enum):
    """Wire protocol spoken by the inference transport."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class AgentConfig(BaseModel):
    """Per-agent configuration.

    Attributes:
        max_tokens: Upper bound on output tokens for every inference call.
        model: Model identifier (None = transport default).
        system_prompt: Optional system prompt sent with every call.
        max_tool_workers: Cap on parallel tool executions in one turn
            (None = one worker per pending call).
        poll_interval: Seconds between cancellation checks while waiting
            on inference or tools.
        greeting: Line shown by the console before the first prompt.
    """

    model_config = {"frozen": True}

    max_tokens: int = DEFAULT_MAX_TOKENS
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    max_tool_workers: Optional[int] = None
    poll_interval: float = 0.05
    greeting: str = DEFAULT_GREETING

    @field_validator("max_tokens")
    @classmethod
    def _positive_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_tokens must be positive")
        return v

    @field_validator("max_tool_workers")
    @classmethod
    def _positive_workers(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("max_tool_workers must be positive")
        return v

    @field_validator("poll_interval")
    @classmethod
    def _positive_poll(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval must be positive")
        return v


class TransportSettings(BaseModel):
    """Transport selection resolved from the environment."""

    model_config = {"frozen": True}

    provider: Provider = Provider.ANTHROPIC
    model: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    log_level: str = "WARNING"

    @field_validator("max_tokens")
    @classmethod
    def _positive_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_tokens must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


_ENV_FIELDS: dict[str, str] = {
    "TURNLOOP_PROVIDER": "provider",
    "TURNLOOP_MODEL": "model",
    "TURNLOOP_BASE_URL": "base_url",
    "TURNLOOP_MAX_TOKENS": "max_tokens",
    "TURNLOOP_LOG_LEVEL": "log_level",
}


def load_settings(environ: dict[str, str] | None = None) -> TransportSettings:
    """Build TransportSettings from ``TURNLOOP_*`` environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``).

    Returns:
        Validated TransportSettings.

    Raises:
        ConfigError: If any variable holds an invalid value.
    """
    env = os.environ if environ is None else environ
    values = {
        field: env[var] for var, field in _ENV_FIELDS.items() if env.get(var)
    }
    try:
        return TransportSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid turnloop configuration: {exc}") from exc
