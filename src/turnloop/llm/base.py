"""Shared httpx + tenacity plumbing for the HTTP transports.

Subclasses provide the endpoint, headers and the wire encoding; this base
handles the API key, the httpx client, retry with exponential backoff and
the mapping of HTTP failures onto the transport error hierarchy.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx
import tenacity

from turnloop.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from turnloop.models.content import Message
    from turnloop.models.response import Response
    from turnloop.toolkit.models import ToolDeclaration

logger = logging.getLogger(__name__)

# 529 is the Anthropic "overloaded" status.
_TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504, 529})
_DENIED_STATUSES = frozenset({401, 403})


def _should_retry(exc: BaseException) -> bool:
    """Retry rate limits, transient server statuses and failed connects.

    Auth failures and other 4xx responses are final.
    """
    if isinstance(exc, LLMAuthError):
        return False
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUSES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds from a numeric Retry-After header, if there is one."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class HTTPTransport(ABC):
    """Base class for sync httpx inference transports.

    Subclasses set ``provider``, ``api_key_env``, ``default_base_url`` and
    ``default_model`` and implement ``_endpoint()``, ``_headers()``,
    ``encode_request()`` and ``decode_response()``.
    """

    provider: str = ""
    api_key_env: str = ""
    default_base_url: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
    ) -> None:
        """Set up the httpx client.

        Args:
            api_key: API key. Falls back to TURNLOOP_API_KEY, then to the
                provider's conventional variable.
            base_url: API base URL. Falls back to TURNLOOP_BASE_URL, then to
                the provider default.
            default_model: Model used when a call does not name one.
            timeout: Per-request timeout in seconds.
            max_retries: Total attempts per inference call for transient
                failures.

        Raises:
            LLMConfigError: If no API key can be found.
        """
        self._api_key = (
            api_key
            or os.environ.get("TURNLOOP_API_KEY")
            or os.environ.get(self.api_key_env, "")
        )
        if not self._api_key:
            raise LLMConfigError(
                f"No API key provided. Pass api_key= or set TURNLOOP_API_KEY "
                f"or {self.api_key_env} environment variable."
            )
        self._base_url = (
            base_url or os.environ.get("TURNLOOP_BASE_URL") or self.default_base_url
        ).rstrip("/")
        self._model = default_model or self.default_model
        self._attempts = max_retries
        self._sleep = tenacity.nap.sleep
        self._client = httpx.Client(timeout=timeout, headers=self._headers())

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _endpoint(self) -> str:
        """Full URL of the completion endpoint."""
        ...

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        """Headers sent with every request, including auth."""
        ...

    @abstractmethod
    def encode_request(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        *,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> dict[str, Any]:
        """Build the provider request body for one inference call."""
        ...

    @abstractmethod
    def decode_response(self, data: dict[str, Any]) -> Response:
        """Parse a provider response body into a Response."""
        ...

    # ------------------------------------------------------------------
    # InferenceTransport
    # ------------------------------------------------------------------

    def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        *,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> Response:
        """Encode the request, POST it with retry and decode the reply.

        Raises:
            LLMAuthError: The key was rejected; never retried.
            LLMRateLimitError: Still rate limited on the last attempt.
            LLMResponseError: The body could not be decoded.
            LLMClientError: Any other HTTP status or network failure.
        """
        payload = self.encode_request(
            messages, tools, max_tokens=max_tokens, model=model, system=system
        )
        retrying = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_should_retry),
            wait=(
                tenacity.wait_exponential(multiplier=1, min=1, max=30)
                + tenacity.wait_random(0, 2)
            ),
            stop=tenacity.stop_after_attempt(self._attempts),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            data = retrying(self._send, payload)
        except httpx.HTTPStatusError as exc:
            raise LLMClientError(
                f"{self.provider} API error: HTTP {exc.response.status_code} - "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMClientError(f"{self.provider} request failed: {exc}") from exc
        return self.decode_response(data)

    def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        """One POST attempt; maps error statuses before decoding JSON."""
        response = self._client.post(self._endpoint(), json=payload)
        status = response.status_code

        if status in _DENIED_STATUSES:
            raise LLMAuthError(f"Authentication failed: HTTP {status} - {response.text}")
        if status == 429:
            raise LLMRateLimitError(
                f"{self.provider} rate limit: {response.text}",
                retry_after=_retry_after(response),
            )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMResponseError(f"Response is not JSON: {response.text[:200]}") from exc
        if not isinstance(data, dict):
            raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HTTPTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
