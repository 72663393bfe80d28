"""Inference response models.

A Response is what a transport hands back for one inference call: the
ordered content blocks of the assistant turn plus the stop reason.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from turnloop.models.content import ContentBlock, Message, Role, ToolCallBlock


class StopReason(str, enum.Enum):
    """Why the model stopped generating."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> StopReason:
        """Map a wire value to a StopReason, unknown values to OTHER."""
        if value is None:
            return cls.OTHER
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Usage(BaseModel):
    """Token accounting for one inference call."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0


class Response(BaseModel):
    """Structured result of one inference call."""

    model_config = ConfigDict(frozen=True)

    content: tuple[ContentBlock, ...] = ()
    stop_reason: StopReason = StopReason.END_TURN
    model: str | None = None
    usage: Usage | None = None

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [b for b in self.content if isinstance(b, ToolCallBlock)]

    def to_message(self) -> Message:
        """The assistant message to append to the conversation."""
        return Message(role=Role.ASSISTANT, content=self.content)
