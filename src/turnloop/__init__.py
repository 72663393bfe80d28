"""Turnloop: a turn-based tool-calling agent core.

Runs the conversation loop between a user, a remote language model and
locally registered tools: user input and model turns accumulate in an
append-only conversation, tool calls requested by the model are validated
against declared schemas, executed, and fed back as results until the model
answers without calling tools.

Usage::

    from turnloop import Agent, AnthropicClient, StreamInput, builtin_registry

    agent = Agent(AnthropicClient(), StreamInput(sys.stdin), output,
                  registry=builtin_registry("."))
    agent.run()
"""

from turnloop.agent import Agent, AgentState, EndReason, RunResult
from turnloop.conversation import Conversation
from turnloop.exceptions import (
    AgentError,
    ConfigError,
    ConversationError,
    DuplicateToolError,
    RegistryFrozenError,
    SchemaGenerationError,
    StartupError,
    ToolError,
    ToolExecutionError,
    ToolInputError,
    ToolNotFoundError,
    TransportError,
    TurnloopError,
)
from turnloop.invoker import InferenceInvoker
from turnloop.io import CallableInput, RecordingOutput, ScriptedInput, StreamInput
from turnloop.llm import AnthropicClient, InferenceTransport, OpenAIClient
from turnloop.models import (
    AgentConfig,
    Message,
    Response,
    Role,
    StopReason,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
    Usage,
)
from turnloop.toolkit import (
    Tool,
    ToolDeclaration,
    ToolDispatcher,
    ToolInput,
    ToolRegistry,
    builtin_registry,
    generate_schema,
    tool,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Agent",
    "AgentState",
    "EndReason",
    "RunResult",
    "Conversation",
    "InferenceInvoker",
    # Models
    "AgentConfig",
    "Message",
    "Response",
    "Role",
    "StopReason",
    "TextBlock",
    "ToolCallBlock",
    "ToolResultBlock",
    "Usage",
    # Tools
    "Tool",
    "ToolDeclaration",
    "ToolDispatcher",
    "ToolInput",
    "ToolRegistry",
    "builtin_registry",
    "generate_schema",
    "tool",
    # Transports
    "AnthropicClient",
    "InferenceTransport",
    "OpenAIClient",
    # I/O
    "CallableInput",
    "RecordingOutput",
    "ScriptedInput",
    "StreamInput",
    # Errors
    "AgentError",
    "ConfigError",
    "ConversationError",
    "DuplicateToolError",
    "RegistryFrozenError",
    "SchemaGenerationError",
    "StartupError",
    "ToolError",
    "ToolExecutionError",
    "ToolInputError",
    "ToolNotFoundError",
    "TransportError",
    "TurnloopError",
]
