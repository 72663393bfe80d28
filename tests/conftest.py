"""Shared test fixtures for turnloop.

Provides a scripted fake transport, response builders, and registries with
simple tools.  No test talks to a real API.
"""

from __future__ import annotations

import threading
import time

import pytest
from pydantic import Field

from turnloop import (
    Response,
    StopReason,
    TextBlock,
    ToolCallBlock,
    ToolExecutionError,
    ToolInput,
    ToolRegistry,
)


# ------------------------------------------------------------------
# Response builders
# ------------------------------------------------------------------


def text_response(text: str = "Done.") -> Response:
    """Model turn with a single text block and no tool calls."""
    return Response(content=(TextBlock(text=text),), stop_reason=StopReason.END_TURN)


def tool_use_response(*calls: tuple[str, str, object], text: str | None = None) -> Response:
    """Model turn requesting tools.

    Args:
        calls: (call_id, tool_name, input) tuples, in emission order.
        text: Optional text block emitted before the calls.
    """
    blocks: list = []
    if text is not None:
        blocks.append(TextBlock(text=text))
    blocks.extend(ToolCallBlock(id=cid, name=name, input=inp) for cid, name, inp in calls)
    return Response(content=tuple(blocks), stop_reason=StopReason.TOOL_USE)


# ------------------------------------------------------------------
# Fake transport
# ------------------------------------------------------------------


class FakeTransport:
    """InferenceTransport that replays canned responses and records calls.

    An entry may be an Exception instance, which is raised instead.
    """

    def __init__(self, responses: list) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []
        self.closed = False

    def complete(self, messages, tools, *, max_tokens, model=None, system=None):
        self.calls.append({
            "messages": tuple(messages),
            "tools": tuple(tools),
            "max_tokens": max_tokens,
            "model": model,
            "system": system,
        })
        if not self._responses:
            raise AssertionError("FakeTransport ran out of responses")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class BlockingTransport(FakeTransport):
    """Transport whose first call blocks until ``release`` is set."""

    def __init__(self, responses: list) -> None:
        super().__init__(responses)
        self.entered = threading.Event()
        self.release = threading.Event()

    def complete(self, messages, tools, **kwargs):
        self.entered.set()
        self.release.wait(5)
        return super().complete(messages, tools, **kwargs)


# ------------------------------------------------------------------
# Tools
# ------------------------------------------------------------------


class PathInput(ToolInput):
    path: str = Field(description="The relative path to the file to read")


class TextInput(ToolInput):
    text: str


def make_files_registry(files: dict[str, str] | None = None) -> ToolRegistry:
    """Registry with an in-memory ``read_file`` tool."""
    contents = dict(files or {})

    def read_file(args: PathInput) -> str:
        if args.path not in contents:
            raise ToolExecutionError("file not found")
        return contents[args.path]

    registry = ToolRegistry()
    registry.register("read_file", "Read a file of a given relative file path", PathInput, read_file)
    return registry


def make_sleepy_registry(delays: dict[str, float]) -> ToolRegistry:
    """Registry with ``echo`` that sleeps ``delays[text]`` seconds first."""

    def echo(args: TextInput) -> str:
        time.sleep(delays.get(args.text, 0.0))
        if args.text.startswith("fail"):
            raise ToolExecutionError(f"echo failed: {args.text}")
        return args.text

    registry = ToolRegistry()
    registry.register("echo", "Echo the text back", TextInput, echo)
    return registry


@pytest.fixture
def files_registry() -> ToolRegistry:
    return make_files_registry({"file.txt": "hello"})
