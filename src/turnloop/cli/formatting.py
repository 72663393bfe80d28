"""Rich formatting helpers for the turnloop CLI.

ConsoleOutput is the OutputSink used by the ``turnloop`` command.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from turnloop.models.content import ToolCallBlock, ToolResultBlock

_TRACE_LIMIT = 200


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message in red."""
    console.print(f"[red]Error:[/red] {escape(message)}")


def _clip(text: str) -> str:
    text = text.replace("\n", " ")
    if len(text) > _TRACE_LIMIT:
        return text[:_TRACE_LIMIT] + "..."
    return text


class ConsoleOutput:
    """OutputSink that prints to a rich Console.

    Args:
        console: Target console.
        assistant_name: Label printed before model text.
        verbose: Also print dim traces of tool calls and results.
    """

    def __init__(
        self,
        console: Console,
        *,
        assistant_name: str = "Claude",
        verbose: bool = False,
    ) -> None:
        self._console = console
        self._assistant_name = assistant_name
        self._verbose = verbose

    def show_prompt(self) -> None:
        self._console.print("[bold blue]You[/bold blue]: ", end="")

    def show_text(self, text: str) -> None:
        self._console.print(
            f"[bold green]{escape(self._assistant_name)}[/bold green]: {escape(text)}"
        )

    def show_tool_call(self, call: ToolCallBlock) -> None:
        if not self._verbose:
            return
        args = call.input if isinstance(call.input, str) else json.dumps(call.input)
        self._console.print(
            f"[dim]tool: {escape(call.name)}({escape(_clip(args))})[/dim]"
        )

    def show_tool_result(self, call: ToolCallBlock, result: ToolResultBlock) -> None:
        if not self._verbose:
            return
        style = "red" if result.is_error else "dim"
        status = "error" if result.is_error else "ok"
        self._console.print(
            f"[{style}]  -> {escape(call.name)} {status}: {escape(_clip(result.output))}[/{style}]"
        )
