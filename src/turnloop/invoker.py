"""InferenceInvoker: one inference call per conversation step.

Builds each request from a full conversation snapshot and the full tool
declaration list (the remote endpoint is stateless across calls), enforces
the output-token bound and normalises every transport failure into a
TransportError.  It never retries and never mutates the conversation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from turnloop.exceptions import TransportError
from turnloop.models.config import DEFAULT_MAX_TOKENS
from turnloop.models.content import ToolResultBlock
from turnloop.models.response import Response

if TYPE_CHECKING:
    from collections.abc import Sequence

    from turnloop.llm.protocols import InferenceTransport
    from turnloop.models.content import Message
    from turnloop.toolkit.models import ToolDeclaration

logger = logging.getLogger(__name__)


class InferenceInvoker:
    """Calls the inference transport with a history snapshot.

    Usage::

        invoker = InferenceInvoker(AnthropicClient(), max_tokens=1024)
        response = invoker.invoke(conversation.snapshot(), registry.declarations())
    """

    def __init__(
        self,
        transport: InferenceTransport,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: str | None = None,
        system_prompt: str | None = None,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self._transport = transport
        self._max_tokens = max_tokens
        self._model = model
        self._system_prompt = system_prompt

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def invoke(
        self,
        history: Sequence[Message],
        declarations: Sequence[ToolDeclaration],
    ) -> Response:
        """Run one inference call.

        Args:
            history: The complete conversation so far.
            declarations: Every tool declaration, in registry order.

        Returns:
            The transport's Response.

        Raises:
            TransportError: If the transport fails or returns something that
                is not a Response.
        """
        messages = tuple(history)
        tools = tuple(declarations)
        logger.debug(
            "Inference call: %d message(s), %d tool(s), max_tokens=%d",
            len(messages),
            len(tools),
            self._max_tokens,
        )
        try:
            response = self._transport.complete(
                messages,
                tools,
                max_tokens=self._max_tokens,
                model=self._model,
                system=self._system_prompt,
            )
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Inference call failed: {exc}") from exc

        if not isinstance(response, Response):
            raise TransportError(
                f"Transport returned {type(response).__name__}, expected Response"
            )
        stray = [b for b in response.content if isinstance(b, ToolResultBlock)]
        if stray:
            # Results only ever come from local dispatch.
            logger.warning(
                "Dropping %d tool result block(s) from model response", len(stray)
            )
            response = response.model_copy(
                update={
                    "content": tuple(
                        b for b in response.content if not isinstance(b, ToolResultBlock)
                    )
                }
            )
        if response.usage is not None:
            logger.debug(
                "Inference usage: %d in, %d out (stop_reason=%s)",
                response.usage.input_tokens,
                response.usage.output_tokens,
                response.stop_reason.value,
            )
        return response
