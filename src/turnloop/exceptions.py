"""Turnloop exception hierarchy.

All turnloop-specific exceptions inherit from TurnloopError.

Three families matter to the turn loop:

- ``StartupError``: a malformed tool declaration or configuration.  Fatal,
  the agent never starts.
- ``TransportError``: the inference call failed.  Fatal to the current run.
- ``ToolError``: a single tool call could not be completed.  Recoverable,
  converted into an error-flagged tool result and fed back to the model.
"""


class TurnloopError(Exception):
    """Base exception for all turnloop errors."""


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class StartupError(TurnloopError):
    """Raised when the agent cannot be constructed."""


class DuplicateToolError(StartupError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool already registered: {tool_name}")


class SchemaGenerationError(StartupError):
    """Raised when a tool's input schema cannot be derived."""


class RegistryFrozenError(StartupError):
    """Raised when registering a tool after the registry was frozen."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(
            f"Cannot register '{tool_name}': the tool registry is frozen "
            f"once an agent has been built from it."
        )


class ConfigError(StartupError):
    """Missing or invalid configuration (e.g., no API key)."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(TurnloopError):
    """Raised when an inference call fails.

    The turn loop never retries these; retry policy belongs to the
    transport itself.
    """


# ---------------------------------------------------------------------------
# Tools (recoverable)
# ---------------------------------------------------------------------------


class ToolError(TurnloopError):
    """Base for failures of a single tool call."""


class ToolNotFoundError(ToolError):
    """Raised when a tool name lookup fails."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool not found: {tool_name}")


class ToolInputError(ToolError):
    """Raised when tool input does not match the tool's schema.

    Named ToolInputError (not ValidationError) to avoid
    collision with pydantic.ValidationError.
    """

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ToolExecutionError(ToolError):
    """Raised by tool implementations to report a failure to the model.

    The message is passed to the model verbatim.
    """


# ---------------------------------------------------------------------------
# Programming errors
# ---------------------------------------------------------------------------


class ConversationError(TurnloopError):
    """Raised when an append would break the tool-calling protocol."""


class AgentError(TurnloopError):
    """Raised when the agent is driven incorrectly (e.g., concurrent runs)."""
