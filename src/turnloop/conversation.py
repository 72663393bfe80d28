"""Conversation: the append-only message history of one agent.

The conversation is the single source of truth passed to every inference
call.  It enforces the tool-calling protocol at the point of append: a
message answering a tool-use turn must carry exactly one result per call,
in call order, and nothing else may be appended while calls are pending.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from turnloop.exceptions import ConversationError
from turnloop.models.content import Role, TextBlock, ToolCallBlock, ToolResultBlock

if TYPE_CHECKING:
    from collections.abc import Iterator

    from turnloop.models.content import Message

logger = logging.getLogger(__name__)


class Conversation:
    """Ordered, append-only sequence of messages.

    Only the agent that owns a conversation appends to it; readers take a
    ``snapshot()``, which is an immutable tuple.

    Usage::

        conversation = Conversation()
        conversation.append(Message.user_text("hello"))
        history = conversation.snapshot()
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def append(self, message: Message) -> None:
        """Append a message, checking it against pending tool calls.

        Raises:
            ConversationError: If the message would break the pairing of
                tool calls and tool results.
        """
        pending = self.pending_tool_calls()
        results = message.tool_result_blocks

        if pending:
            expected = [c.id for c in pending]
            got = [r.tool_call_id for r in results]
            if message.role != Role.USER or got != expected:
                raise ConversationError(
                    f"Pending tool calls {expected} must be answered by one user "
                    f"message with results in the same order; got "
                    f"{message.role.value} message answering {got}"
                )
        elif results:
            raise ConversationError(
                "Tool results appended without pending tool calls: "
                f"{[r.tool_call_id for r in results]}"
            )

        for block in message.content:
            if isinstance(block, TextBlock):
                continue
            if isinstance(block, ToolCallBlock):
                if message.role != Role.ASSISTANT:
                    raise ConversationError("Only assistant messages may contain tool calls")
            elif isinstance(block, ToolResultBlock):
                continue
            else:
                assert_never(block)

        self._messages.append(message)
        logger.debug(
            "Appended %s message with %d block(s); history length %d",
            message.role.value,
            len(message.content),
            len(self._messages),
        )

    def pending_tool_calls(self) -> list[ToolCallBlock]:
        """Tool calls of the last message that still await results."""
        if not self._messages:
            return []
        last = self._messages[-1]
        if last.role != Role.ASSISTANT:
            return []
        return last.tool_calls

    def snapshot(self) -> tuple[Message, ...]:
        """Immutable view of the history at this point."""
        return tuple(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
