"""Tests for input sources and output sinks, including the rich console sink."""

from __future__ import annotations

import io

from rich.console import Console

from turnloop import CallableInput, RecordingOutput, ScriptedInput, StreamInput, ToolCallBlock, ToolResultBlock
from turnloop.cli.formatting import ConsoleOutput, format_error
from turnloop.io import InputSource, OutputSink


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=1000, force_terminal=False, color_system=None), buf


class TestInputs:
    def test_stream_input_strips_newlines(self):
        source = StreamInput(io.StringIO("first\r\nsecond\n\nlast"))
        assert [source.read_line() for _ in range(5)] == ["first", "second", "", "last", None]

    def test_scripted_input(self):
        source = ScriptedInput(["a"])
        assert source.read_line() == "a"
        assert source.read_line() is None
        assert source.reads == 2

    def test_callable_input(self):
        replies = iter([("hello", True), ("", False)])
        source = CallableInput(lambda: next(replies))
        assert source.read_line() == "hello"
        assert source.read_line() is None

    def test_protocols(self):
        assert isinstance(ScriptedInput([]), InputSource)
        assert isinstance(RecordingOutput(), OutputSink)
        console, _ = _console()
        assert isinstance(ConsoleOutput(console), OutputSink)


class TestConsoleOutput:
    def test_prompt_and_text(self):
        console, buf = _console()
        out = ConsoleOutput(console)
        out.show_prompt()
        out.show_text("Hello [world]")
        assert buf.getvalue() == "You: Claude: Hello [world]\n"

    def test_tool_traces_hidden_unless_verbose(self):
        console, buf = _console()
        call = ToolCallBlock(id="t1", name="read_file", input={"path": "a.txt"})
        ConsoleOutput(console).show_tool_call(call)
        assert buf.getvalue() == ""

    def test_verbose_traces(self):
        console, buf = _console()
        out = ConsoleOutput(console, verbose=True)
        call = ToolCallBlock(id="t1", name="read_file", input={"path": "a.txt"})
        out.show_tool_call(call)
        out.show_tool_result(call, ToolResultBlock(tool_call_id="t1", output="x" * 500, is_error=True))
        lines = buf.getvalue().splitlines()
        assert lines[0] == 'tool: read_file({"path": "a.txt"})'
        assert lines[1].startswith("  -> read_file error: xxx")
        assert lines[1].endswith("...")

    def test_format_error(self):
        console, buf = _console()
        format_error("bad [thing]", console)
        assert buf.getvalue() == "Error: bad [thing]\n"
