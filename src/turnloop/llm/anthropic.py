"""Anthropic Messages API transport.

Content blocks map one-to-one onto the Messages API wire format:
``text``, ``tool_use`` and ``tool_result`` (with ``tool_use_id``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, assert_never

from pydantic import ValidationError

from turnloop.llm.base import HTTPTransport
from turnloop.llm.errors import LLMResponseError
from turnloop.models.content import TextBlock, ToolCallBlock, ToolResultBlock
from turnloop.models.response import Response, StopReason, Usage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from turnloop.models.content import Message
    from turnloop.toolkit.models import ToolDeclaration

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient(HTTPTransport):
    """Sync httpx client for the Anthropic Messages API.

    Usage::

        with AnthropicClient(api_key="sk-ant-...") as client:
            response = client.complete(history, declarations, max_tokens=1024)
    """

    provider = "anthropic"
    api_key_env = "ANTHROPIC_API_KEY"
    default_base_url = "https://api.anthropic.com/v1"
    default_model = "claude-3-7-sonnet-latest"

    def _endpoint(self) -> str:
        return f"{self._base_url}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def encode_request(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        *,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens,
            "messages": [
                {
                    "role": m.role.value,
                    "content": [encode_block(b) for b in m.content],
                }
                for m in messages
            ],
        }
        if tools:
            payload["tools"] = [t.to_anthropic() for t in tools]
        if system:
            payload["system"] = system
        return payload

    def decode_response(self, data: dict[str, Any]) -> Response:
        raw_blocks = data.get("content")
        if not isinstance(raw_blocks, list):
            raise LLMResponseError(
                f"Unexpected response format: missing 'content' list. Response: {data}"
            )
        blocks: list[TextBlock | ToolCallBlock] = []
        try:
            for raw in raw_blocks:
                kind = raw.get("type") if isinstance(raw, dict) else None
                if kind == "text":
                    blocks.append(TextBlock(text=raw.get("text", "")))
                elif kind == "tool_use":
                    blocks.append(
                        ToolCallBlock(
                            id=raw["id"], name=raw["name"], input=raw.get("input", {})
                        )
                    )
                else:
                    logger.debug("Skipping unsupported content block: %s", kind)
        except (KeyError, ValidationError) as exc:
            raise LLMResponseError(f"Malformed content block: {exc}") from exc

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = Usage(
                input_tokens=raw_usage.get("input_tokens", 0) or 0,
                output_tokens=raw_usage.get("output_tokens", 0) or 0,
            )
        return Response(
            content=tuple(blocks),
            stop_reason=StopReason.parse(data.get("stop_reason")),
            model=data.get("model"),
            usage=usage,
        )


def encode_block(block: TextBlock | ToolCallBlock | ToolResultBlock) -> dict[str, Any]:
    """Render one content block in Messages API format."""
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolCallBlock):
        return {
            "type": "tool_use",
            "id": block.id,
            "name": block.name,
            "input": block.input if isinstance(block.input, dict) else {},
        }
    if isinstance(block, ToolResultBlock):
        return {
            "type": "tool_result",
            "tool_use_id": block.tool_call_id,
            "content": block.output,
            "is_error": block.is_error,
        }
    assert_never(block)
