"""Inference transport protocol.

The turn loop only ever talks to an InferenceTransport.  The built-in
AnthropicClient and OpenAIClient implement it over HTTP; tests and
embedders can supply any object with matching methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from turnloop.models.content import Message
    from turnloop.models.response import Response
    from turnloop.toolkit.models import ToolDeclaration


@runtime_checkable
class InferenceTransport(Protocol):
    """Protocol for pluggable inference transports.

    ``complete`` receives the full history and the full tool list on every
    call; the remote endpoint keeps no state between calls.
    """

    def complete(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDeclaration],
        *,
        max_tokens: int,
        model: str | None = None,
        system: str | None = None,
    ) -> Response:
        """Run one inference call and return the parsed response."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
