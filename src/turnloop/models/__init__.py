"""Data models: content blocks, messages, responses and configuration."""

from turnloop.models.config import (
    AgentConfig,
    Provider,
    TransportSettings,
    load_settings,
)
from turnloop.models.content import (
    ContentBlock,
    Message,
    Role,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
    describe_block,
    parse_block,
)
from turnloop.models.response import Response, StopReason, Usage

__all__ = [
    "AgentConfig",
    "ContentBlock",
    "Message",
    "Provider",
    "Response",
    "Role",
    "StopReason",
    "TextBlock",
    "ToolCallBlock",
    "ToolResultBlock",
    "TransportSettings",
    "Usage",
    "describe_block",
    "load_settings",
    "parse_block",
]
