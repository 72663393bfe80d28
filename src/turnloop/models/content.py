"""Content blocks and messages.

Defines the three content block kinds as Pydantic models with a
discriminated union (ContentBlock), and the immutable Message that carries
an ordered tuple of blocks.

The union is closed: code that switches on a block kind handles all three
and ends with ``assert_never`` so a new kind shows up in type checking at
every consumption site.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Annotated, Any, Literal, Union, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Role(str, enum.Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


# ---------------------------------------------------------------------------
# Block models
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    """Plain text, shown to the user when it comes from the model."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolCallBlock(BaseModel):
    """A request from the model to run a named tool.

    ``input`` is the raw structured data the model produced.  It is only
    validated when the call is dispatched.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The outcome of one tool call, linked to it by ``tool_call_id``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    output: str
    is_error: bool = False


ContentBlock = Annotated[
    Union[TextBlock, ToolCallBlock, ToolResultBlock],
    Field(discriminator="type"),
]

_block_adapter = TypeAdapter(ContentBlock)


def parse_block(data: dict) -> TextBlock | ToolCallBlock | ToolResultBlock:
    """Validate a block dict (with a ``type`` key) into its model."""
    return _block_adapter.validate_python(data)


def describe_block(block: TextBlock | ToolCallBlock | ToolResultBlock) -> str:
    """One-line human summary of a block, used in logs and traces."""
    if isinstance(block, TextBlock):
        return f"text({len(block.text)} chars)"
    if isinstance(block, ToolCallBlock):
        return f"tool_use({block.name}#{block.id})"
    if isinstance(block, ToolResultBlock):
        status = "error" if block.is_error else "ok"
        return f"tool_result({block.tool_call_id}, {status})"
    assert_never(block)


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """One turn of the conversation.

    Frozen: once appended to a conversation a message is never edited.
    Corrections are new messages.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: tuple[ContentBlock, ...]

    @classmethod
    def user_text(cls, text: str) -> Message:
        """Build the message for one line of user input."""
        return cls(role=Role.USER, content=(TextBlock(text=text),))

    @classmethod
    def assistant_text(cls, text: str) -> Message:
        return cls(role=Role.ASSISTANT, content=(TextBlock(text=text),))

    @classmethod
    def tool_results(cls, results: Iterable[ToolResultBlock]) -> Message:
        """Build the single follow-up message answering a tool-use turn.

        Tool results travel in a user-role message, as the wire protocol
        expects.
        """
        return cls(role=Role.USER, content=tuple(results))

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [b for b in self.content if isinstance(b, TextBlock)]

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [b for b in self.content if isinstance(b, ToolCallBlock)]

    @property
    def tool_result_blocks(self) -> list[ToolResultBlock]:
        return [b for b in self.content if isinstance(b, ToolResultBlock)]

    @property
    def text(self) -> str:
        """All text blocks joined with newlines."""
        return "\n".join(b.text for b in self.text_blocks)
