"""Input and output collaborators of the turn loop.

The agent reads user lines from an InputSource and reports what happens to
an OutputSink.  Neither knows about terminals: the rich console sink lives
in ``turnloop.cli.formatting``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from turnloop.models.content import ToolCallBlock, ToolResultBlock


@runtime_checkable
class InputSource(Protocol):
    """Supplies user lines; ``None`` means there is no more input."""

    def read_line(self) -> str | None:
        ...


@runtime_checkable
class OutputSink(Protocol):
    """Receives what the loop wants displayed, in order."""

    def show_prompt(self) -> None:
        """Called right before the loop waits for a user line."""
        ...

    def show_text(self, text: str) -> None:
        """One text block from the model."""
        ...

    def show_tool_call(self, call: ToolCallBlock) -> None:
        ...

    def show_tool_result(self, call: ToolCallBlock, result: ToolResultBlock) -> None:
        ...


class StreamInput:
    """Reads lines from a text stream (stdin by default)."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def read_line(self) -> str | None:
        line = self._stream.readline()
        if line == "":
            return None
        return line.rstrip("\r\n")


class ScriptedInput:
    """Replays a fixed list of lines, then reports end of input."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = list(lines)
        self.reads = 0

    def read_line(self) -> str | None:
        self.reads += 1
        if not self._lines:
            return None
        return self._lines.pop(0)


class CallableInput:
    """Adapts a ``() -> (line, has_more)`` function to InputSource."""

    def __init__(self, fn: Callable[[], tuple[str, bool]]) -> None:
        self._fn = fn

    def read_line(self) -> str | None:
        line, has_more = self._fn()
        return line if has_more else None


class RecordingOutput:
    """Collects everything shown, in order.  Used in tests and batch runs."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    @property
    def texts(self) -> list[str]:
        return [str(payload) for kind, payload in self.events if kind == "text"]

    @property
    def prompts(self) -> int:
        return sum(1 for kind, _ in self.events if kind == "prompt")

    def show_prompt(self) -> None:
        self.events.append(("prompt", None))

    def show_text(self, text: str) -> None:
        self.events.append(("text", text))

    def show_tool_call(self, call: ToolCallBlock) -> None:
        self.events.append(("tool_call", call))

    def show_tool_result(self, call: ToolCallBlock, result: ToolResultBlock) -> None:
        self.events.append(("tool_result", result))
