"""Tests for the Agent turn loop.

Covers the tool-calling protocol end to end with a fake transport:
plain exchanges, tool dispatch, error results, ordering, end of input,
transport failures and the no-overlap guarantee.
"""

from __future__ import annotations

import threading

import pytest

from tests.conftest import (
    BlockingTransport,
    FakeTransport,
    make_files_registry,
    make_sleepy_registry,
    text_response,
    tool_use_response,
)
from turnloop import (
    Agent,
    AgentConfig,
    AgentError,
    AgentState,
    CallableInput,
    EndReason,
    RecordingOutput,
    Response,
    Role,
    ScriptedInput,
    StopReason,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
    TransportError,
)


def _agent(transport, lines, registry=None, **kwargs):
    output = RecordingOutput()
    agent = Agent(transport, ScriptedInput(lines), output, registry, **kwargs)
    return agent, output


# ------------------------------------------------------------------
# Plain exchanges
# ------------------------------------------------------------------


class TestPlainExchange:
    def test_end_of_input_at_first_read_never_calls_transport(self):
        transport = FakeTransport([])
        agent, output = _agent(transport, [])

        result = agent.run()

        assert transport.calls == []
        assert result.end_reason == EndReason.END_OF_INPUT
        assert result.inference_calls == 0
        assert agent.state == AgentState.TERMINATED
        assert len(agent.conversation) == 0
        assert output.prompts == 1

    def test_text_reply_is_shown_and_loop_awaits_next_line(self):
        transport = FakeTransport([text_response("Hi there.")])
        agent, output = _agent(transport, ["hello"])

        result = agent.run()

        assert output.texts == ["Hi there."]
        assert result.inference_calls == 1
        assert result.messages == 2
        # Prompted for the first line and again after the reply.
        assert output.prompts == 2

    def test_history_grows_between_calls(self):
        transport = FakeTransport([text_response("one"), text_response("two")])
        agent, _ = _agent(transport, ["first", "second"])

        agent.run()

        assert len(transport.calls[0]["messages"]) == 1
        assert len(transport.calls[1]["messages"]) == 3
        roles = [m.role for m in agent.conversation]
        assert roles == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]

    def test_multiple_text_blocks_shown_in_order(self):
        response = text_response("a").model_copy(
            update={"content": (TextBlock(text="a"), TextBlock(text="b"))}
        )
        agent, output = _agent(FakeTransport([response]), ["go"])

        agent.run()

        assert output.texts == ["a", "b"]

    def test_tool_results_in_model_reply_are_dropped(self):
        reply = Response(
            content=(
                TextBlock(text="hi"),
                ToolResultBlock(tool_call_id="ghost", output="x"),
            ),
            stop_reason=StopReason.END_TURN,
        )
        transport = FakeTransport([reply])
        agent, output = _agent(transport, ["hello"])

        result = agent.run()

        assert result.end_reason == EndReason.END_OF_INPUT
        assert output.texts == ["hi"]
        assert result.messages == 2
        assert agent.conversation.last.content == (TextBlock(text="hi"),)

    def test_config_is_passed_to_transport(self):
        transport = FakeTransport([text_response()])
        config = AgentConfig(max_tokens=256, model="m-1", system_prompt="be brief")
        agent, _ = _agent(transport, ["hi"], config=config)

        agent.run()

        call = transport.calls[0]
        assert call["max_tokens"] == 256
        assert call["model"] == "m-1"
        assert call["system"] == "be brief"

    def test_declarations_sent_every_call(self, files_registry):
        transport = FakeTransport([text_response(), text_response()])
        agent, _ = _agent(transport, ["a", "b"], files_registry)

        agent.run()

        for call in transport.calls:
            assert [d.name for d in call["tools"]] == ["read_file"]

    def test_empty_line_is_sent_as_user_text(self):
        transport = FakeTransport([text_response()])
        agent, _ = _agent(transport, [""])

        agent.run()

        assert agent.conversation.snapshot()[0].text == ""


# ------------------------------------------------------------------
# Tool dispatch
# ------------------------------------------------------------------


class TestToolDispatch:
    def test_read_file_round_trip(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            text_response("The file says hello."),
        ])
        agent, output = _agent(transport, ["what's in file.txt?"], files_registry)

        result = agent.run()

        history = agent.conversation.snapshot()
        assert len(history) == 4
        results_msg = history[2]
        assert results_msg.role == Role.USER
        assert results_msg.content == (
            ToolResultBlock(tool_call_id="t1", output="hello", is_error=False),
        )
        # Second inference ran without new user input and saw the result.
        assert len(transport.calls) == 2
        assert transport.calls[1]["messages"][-1] == results_msg
        assert output.texts == ["The file says hello."]
        assert result.tool_calls == 1
        assert result.end_reason == EndReason.END_OF_INPUT

    def test_tool_error_is_reported_and_loop_continues(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "missing.txt"})),
            text_response("That file does not exist."),
        ])
        agent, output = _agent(transport, ["read missing.txt"], files_registry)

        agent.run()

        result = agent.conversation.snapshot()[2].content[0]
        assert result.tool_call_id == "t1"
        assert result.is_error is True
        assert result.output == "file not found"
        assert output.texts == ["That file does not exist."]

    def test_unknown_tool_is_error_and_results_stay_ordered(self, files_registry):
        transport = FakeTransport([
            tool_use_response(
                ("a", "read_file", {"path": "file.txt"}),
                ("b", "unknown_tool", {}),
            ),
            text_response(),
        ])
        agent, _ = _agent(transport, ["go"], files_registry)

        agent.run()

        results = agent.conversation.snapshot()[2].content
        assert [r.tool_call_id for r in results] == ["a", "b"]
        assert results[0].is_error is False
        assert results[0].output == "hello"
        assert results[1].is_error is True
        assert results[1].output == "tool not found"

    def test_invalid_input_is_error_result(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"file": "file.txt"})),
            text_response(),
        ])
        agent, _ = _agent(transport, ["go"], files_registry)

        agent.run()

        result = agent.conversation.snapshot()[2].content[0]
        assert result.is_error is True
        assert result.output.startswith("invalid input for read_file")

    def test_results_follow_call_order_not_completion_order(self):
        registry = make_sleepy_registry({"slow": 0.3, "fast": 0.0})
        transport = FakeTransport([
            tool_use_response(
                ("c1", "echo", {"text": "slow"}),
                ("c2", "echo", {"text": "fast"}),
            ),
            text_response(),
        ])
        agent, _ = _agent(transport, ["go"], registry)

        agent.run()

        results = agent.conversation.snapshot()[2].content
        assert [(r.tool_call_id, r.output) for r in results] == [
            ("c1", "slow"),
            ("c2", "fast"),
        ]

    def test_chained_tool_turns_before_final_answer(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            tool_use_response(("t2", "read_file", {"path": "file.txt"})),
            text_response("done"),
        ])
        agent, output = _agent(transport, ["go"], files_registry)

        result = agent.run()

        assert result.inference_calls == 3
        assert result.tool_calls == 2
        assert len(agent.conversation) == 6
        assert output.prompts == 2

    def test_text_and_tool_calls_are_both_shown(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"}), text="Let me look."),
            text_response("ok"),
        ])
        agent, output = _agent(transport, ["go"], files_registry)

        agent.run()

        kinds = [kind for kind, _ in output.events]
        assert kinds == ["prompt", "text", "tool_call", "tool_result", "text", "prompt"]

    def test_tool_calls_dispatched_even_with_other_stop_reason(self, files_registry):
        response = tool_use_response(("t1", "read_file", {"path": "file.txt"})).model_copy(
            update={"stop_reason": StopReason.END_TURN}
        )
        transport = FakeTransport([response, text_response()])
        agent, _ = _agent(transport, ["go"], files_registry)

        agent.run()

        assert len(transport.calls) == 2
        assert agent.conversation.snapshot()[2].content[0].output == "hello"

    def test_on_tool_result_callback(self, files_registry):
        seen: list[tuple[ToolCallBlock, ToolResultBlock]] = []
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            text_response(),
        ])
        agent, _ = _agent(
            transport, ["go"], files_registry,
            on_tool_result=lambda call, result: seen.append((call, result)),
        )

        agent.run()

        assert len(seen) == 1
        assert seen[0][0].id == "t1"
        assert seen[0][1].output == "hello"

    def test_failing_callback_does_not_break_loop(self, files_registry):
        def boom(call, result):
            raise RuntimeError("callback failed")

        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            text_response("fine"),
        ])
        agent, output = _agent(transport, ["go"], files_registry, on_tool_result=boom)

        agent.run()

        assert output.texts == ["fine"]


# ------------------------------------------------------------------
# Failures and lifecycle
# ------------------------------------------------------------------


class TestFailures:
    def test_transport_error_terminates_run(self):
        transport = FakeTransport([TransportError("connection refused")])
        agent, _ = _agent(transport, ["hi", "never read"])

        with pytest.raises(TransportError, match="connection refused"):
            agent.run()

        assert agent.state == AgentState.TERMINATED
        assert len(transport.calls) == 1
        # The user message is kept; nothing else was appended.
        assert len(agent.conversation) == 1

    def test_unexpected_transport_exception_is_wrapped(self):
        transport = FakeTransport([RuntimeError("socket closed")])
        agent, _ = _agent(transport, ["hi"])

        with pytest.raises(TransportError, match="socket closed"):
            agent.run()

    def test_transport_error_during_tool_follow_up(self, files_registry):
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            TransportError("overloaded"),
        ])
        agent, _ = _agent(transport, ["go"], files_registry)

        with pytest.raises(TransportError):
            agent.run()

        # Results were appended before the failing call.
        assert len(agent.conversation) == 3
        assert agent.conversation.pending_tool_calls() == []

    def test_registry_frozen_after_construction(self, files_registry):
        agent, _ = _agent(FakeTransport([]), [], files_registry)
        assert agent.registry.frozen


class TestNoOverlap:
    def test_concurrent_run_is_rejected(self):
        transport = BlockingTransport([text_response()])
        agent, _ = _agent(transport, ["hi"])

        worker = threading.Thread(target=agent.run)
        worker.start()
        try:
            assert transport.entered.wait(5)
            with pytest.raises(AgentError, match="already running"):
                agent.run()
        finally:
            transport.release.set()
            worker.join(5)

        assert len(transport.calls) == 1

    def test_reset_rejected_while_running(self):
        transport = BlockingTransport([text_response()])
        agent, _ = _agent(transport, ["hi"])

        worker = threading.Thread(target=agent.run)
        worker.start()
        try:
            assert transport.entered.wait(5)
            with pytest.raises(AgentError):
                agent.reset()
        finally:
            transport.release.set()
            worker.join(5)


class TestStates:
    def test_returns_to_awaiting_user_after_tool_exchange(self, files_registry):
        states: list[AgentState] = []
        lines = iter(["what's in file.txt?"])
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "file.txt"})),
            text_response("hello"),
        ])
        holder: dict = {}

        def read():
            states.append(holder["agent"].state)
            line = next(lines, None)
            return (line or "", line is not None)

        holder["agent"] = agent = Agent(
            transport, CallableInput(read), RecordingOutput(), files_registry
        )
        assert agent.state == AgentState.IDLE

        agent.run()

        assert states == [AgentState.AWAITING_USER, AgentState.AWAITING_USER]
        assert agent.state == AgentState.TERMINATED

    def test_dispatching_state_seen_by_tools(self):
        seen: list[AgentState] = []
        registry = make_files_registry({"f": "x"})
        transport = FakeTransport([
            tool_use_response(("t1", "read_file", {"path": "f"})),
            text_response(),
        ])
        agent, _ = _agent(
            transport, ["go"], registry,
            on_tool_result=lambda call, result: seen.append(agent.state),
        )

        agent.run()

        assert seen == [AgentState.DISPATCHING_TOOLS]
