"""ToolRegistry: the name -> tool mapping shared by the agent.

Tools are registered once at startup.  Building an agent freezes the
registry; after that it is read-only and safe to read from the tool
dispatch threads.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from turnloop.exceptions import DuplicateToolError, RegistryFrozenError, ToolNotFoundError
from turnloop.toolkit.models import Tool

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from pydantic import BaseModel

    from turnloop.toolkit.models import ToolDeclaration

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of tools in registration order.

    Usage::

        registry = ToolRegistry()
        registry.register("read_file", "Read a file", ReadFileInput, read_file)

        tool = registry.lookup("read_file")
        declarations = registry.declarations()
    """

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        for t in tools or ():
            self.add(t)

    def register(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel],
        execute: Callable[[Any], object],
    ) -> Tool:
        """Register a tool from its parts.

        Raises:
            DuplicateToolError: If ``name`` is already registered.
            SchemaGenerationError: If the input model is unusable.
            RegistryFrozenError: If the registry is frozen.
        """
        self._check_writable(name)
        if name in self._tools:
            raise DuplicateToolError(name)
        return self.add(Tool.build(name, description, input_model, execute))

    def add(self, tool: Tool) -> Tool:
        """Register a pre-built Tool.

        Raises:
            DuplicateToolError: If a tool with the same name exists.
            RegistryFrozenError: If the registry is frozen.
        """
        self._check_writable(tool.name)
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)
        return tool

    def lookup(self, name: str) -> Tool:
        """Return the tool registered under ``name``.

        Raises:
            ToolNotFoundError: If no such tool exists.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def declarations(self) -> tuple[ToolDeclaration, ...]:
        """Declarations of all tools, in registration order."""
        return tuple(t.declaration for t in self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def freeze(self) -> None:
        """Make the registry read-only.  Idempotent."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self, name: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))
