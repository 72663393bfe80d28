"""OpenAI-compatible chat completions transport.

Translates the content-block conversation into the chat completions
format: tool calls travel as ``tool_calls`` on the assistant message with
JSON-string arguments, each tool result becomes its own ``tool`` message.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, assert_never

from pydantic import ValidationError

from turnloop.llm.base import HTTPTransport
from turnloop.llm.errors import LLMResponseError
from turnloop.models.content import Role, TextBlock, ToolCallBlock, ToolResultBlock
from turnloop.models.response import Response, StopReason, Usage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from turnloop.models.content import Message
    from turnloop.toolkit.models import ToolDeclaration

logger = logging.getLogger(__name__)

_FINISH_REASONS: dict[str, StopReason] = {
    "stop": StopReason.END_TURN,
    "tool_calls": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
}


class OpenAIClient(HTTPTransport):
    """Sync httpx client for OpenAI-compatible chat completions.

    Usage::

        with OpenAIClient(api_key="sk-...", base_url="http://localhost:8000/v1") as client:
            response = client.complete(history, declarations, max_tokens=1024)
    """

    provider = "openai"
    api_key_env = "OPENAI_API_KEY"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o-mini"

    def _endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
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
        wire: list[dict[str, Any]] = []
        if system:
            wire.append({"role": "system", "content": system})
        for message in messages:
            wire.extend(encode_message(message))

        payload: dict[str, Any] = {
            "model": model or self._model,
            "messages": wire,
            "max_tokens": max_tokens,
        }
        if tools:
            payload["tools"] = [t.to_openai() for t in tools]
        return payload

    def decode_response(self, data: dict[str, Any]) -> Response:
        try:
            choice = data["choices"][0]
            message = choice["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMResponseError(
                f"Unexpected response format: missing 'choices'. Response: {data}"
            ) from exc

        blocks: list[TextBlock | ToolCallBlock] = []
        content = message.get("content")
        if content:
            blocks.append(TextBlock(text=content))
        try:
            for raw in message.get("tool_calls") or []:
                func = raw["function"]
                arguments = func.get("arguments") or "{}"
                try:
                    parsed: Any = json.loads(arguments)
                except (json.JSONDecodeError, TypeError):
                    # Keep the raw text; local validation reports it to the model.
                    logger.warning(
                        "Malformed JSON in tool call arguments for %s", func.get("name")
                    )
                    parsed = arguments
                blocks.append(ToolCallBlock(id=raw["id"], name=func["name"], input=parsed))
        except (KeyError, TypeError, ValidationError) as exc:
            raise LLMResponseError(f"Malformed tool call: {exc}") from exc

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = Usage(
                input_tokens=raw_usage.get("prompt_tokens", 0) or 0,
                output_tokens=raw_usage.get("completion_tokens", 0) or 0,
            )
        finish = choice.get("finish_reason")
        return Response(
            content=tuple(blocks),
            stop_reason=_FINISH_REASONS.get(finish, StopReason.parse(finish)),
            model=data.get("model"),
            usage=usage,
        )


def encode_message(message: Message) -> list[dict[str, Any]]:
    """Render one Message as one or more chat completion messages."""
    texts: list[str] = []
    calls: list[dict[str, Any]] = []
    results: list[dict[str, Any]] = []
    for block in message.content:
        if isinstance(block, TextBlock):
            texts.append(block.text)
        elif isinstance(block, ToolCallBlock):
            arguments = block.input if isinstance(block.input, str) else json.dumps(block.input)
            calls.append({
                "id": block.id,
                "type": "function",
                "function": {"name": block.name, "arguments": arguments},
            })
        elif isinstance(block, ToolResultBlock):
            content = f"Error: {block.output}" if block.is_error else block.output
            results.append({
                "role": "tool",
                "tool_call_id": block.tool_call_id,
                "content": content,
            })
        else:
            assert_never(block)

    text = "\n".join(texts)
    if message.role == Role.ASSISTANT:
        out: dict[str, Any] = {"role": "assistant", "content": text or None}
        if calls:
            out["tool_calls"] = calls
        return [out]

    wire = list(results)
    if texts or not results:
        wire.append({"role": "user", "content": text})
    return wire
