"""Agent toolkit: tool declarations, schemas, registry and dispatch.

Provides the ToolInput base for declaring tool inputs, schema generation,
the ToolRegistry, the concurrent ToolDispatcher and the built-in file tools.
"""

from turnloop.toolkit.builtin import (
    ListFilesInput,
    ReadFileInput,
    builtin_registry,
    make_list_files,
    make_read_file,
)
from turnloop.toolkit.executor import DispatchOutcome, ToolDispatcher
from turnloop.toolkit.models import Tool, ToolDeclaration, tool
from turnloop.toolkit.registry import ToolRegistry
from turnloop.toolkit.schema import ToolInput, generate_schema

__all__ = [
    "DispatchOutcome",
    "ListFilesInput",
    "ReadFileInput",
    "Tool",
    "ToolDeclaration",
    "ToolDispatcher",
    "ToolInput",
    "ToolRegistry",
    "builtin_registry",
    "generate_schema",
    "make_list_files",
    "make_read_file",
    "tool",
]
