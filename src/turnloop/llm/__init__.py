"""Inference transports for turnloop.

Provides the InferenceTransport protocol, httpx clients for the Anthropic
Messages API and OpenAI-compatible chat completions, and the transport
error hierarchy.
"""

from turnloop.llm.anthropic import AnthropicClient
from turnloop.llm.base import HTTPTransport
from turnloop.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from turnloop.llm.openai import OpenAIClient
from turnloop.llm.protocols import InferenceTransport

__all__ = [
    "AnthropicClient",
    "HTTPTransport",
    "InferenceTransport",
    "LLMAuthError",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMResponseError",
    "OpenAIClient",
]
