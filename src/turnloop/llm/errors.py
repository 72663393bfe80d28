"""Transport error hierarchy.

Every failure of an inference call surfaces as a TransportError subclass,
so the turn loop treats them uniformly: fatal to the run, never retried at
the loop level.
"""

from __future__ import annotations

from turnloop.exceptions import ConfigError, TransportError


class LLMClientError(TransportError):
    """An HTTP transport could not complete a request."""


class LLMConfigError(ConfigError):
    """A transport was constructed without usable settings (e.g., no key)."""


class LLMRateLimitError(LLMClientError):
    """The API answered 429 on every attempt.

    Attributes:
        retry_after: Server-suggested delay in seconds, or None.
    """

    def __init__(self, message: str = "rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """The API rejected the key (401/403)."""


class LLMResponseError(LLMClientError):
    """The response body could not be decoded into a Response."""
