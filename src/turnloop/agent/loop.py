"""Core turn loop: the tool-calling protocol state machine.

Provides the Agent class that reads user input, runs inference, dispatches
tool calls and feeds their results back, re-invoking inference without new
user input until the model answers with no pending tool calls.

The agent owns the only mutation path into its conversation.  Inference
calls never overlap; tool calls of one turn run concurrently and are
joined in the order the model emitted them.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING, assert_never

from turnloop.agent.config import AgentState, EndReason
from turnloop.agent.models import RunResult
from turnloop.conversation import Conversation
from turnloop.exceptions import AgentError
from turnloop.invoker import InferenceInvoker
from turnloop.models.config import AgentConfig
from turnloop.models.content import (
    Message,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
)
from turnloop.models.response import StopReason
from turnloop.toolkit.executor import ToolDispatcher
from turnloop.toolkit.registry import ToolRegistry

if TYPE_CHECKING:
    from collections.abc import Callable

    from turnloop.io import InputSource, OutputSink
    from turnloop.llm.protocols import InferenceTransport
    from turnloop.models.response import Response

logger = logging.getLogger(__name__)


class Agent:
    """Turn-based agent that runs the tool-calling loop.

    State machine::

        AWAITING_USER --line--> INFERRING --no tool calls--> AWAITING_USER
                                   |   ^
                          tool calls   | results appended
                                   v   |
                              DISPATCHING_TOOLS

        AWAITING_USER --end of input--> TERMINATED
        INFERRING --transport error--> TERMINATED (error raised)
        any --cancel()--> TERMINATED

    Usage::

        agent = Agent(AnthropicClient(), StreamInput(sys.stdin), output,
                      registry=builtin_registry("."))
        result = agent.run()
    """

    def __init__(
        self,
        transport: InferenceTransport,
        input_source: InputSource,
        output: OutputSink,
        registry: ToolRegistry | None = None,
        *,
        config: AgentConfig | None = None,
        conversation: Conversation | None = None,
        on_tool_result: Callable[[ToolCallBlock, ToolResultBlock], None] | None = None,
    ) -> None:
        self._config = config or AgentConfig()
        self._registry = registry if registry is not None else ToolRegistry()
        self._registry.freeze()
        self._declarations = self._registry.declarations()
        self._conversation = conversation if conversation is not None else Conversation()
        self._invoker = InferenceInvoker(
            transport,
            max_tokens=self._config.max_tokens,
            model=self._config.model,
            system_prompt=self._config.system_prompt,
        )
        self._dispatcher = ToolDispatcher(
            self._registry, max_workers=self._config.max_tool_workers
        )
        self._input = input_source
        self._output = output
        self._on_tool_result = on_tool_result

        self._state = AgentState.IDLE
        self._cancel_event = threading.Event()
        self._run_lock = threading.Lock()
        self._inference_calls = 0
        self._tool_calls = 0

        logger.info(
            "Agent initialized with %d tool(s): %s",
            len(self._declarations),
            ", ".join(d.name for d in self._declarations) or "-",
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> AgentState:
        """Return the current agent state."""
        return self._state

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def run(self) -> RunResult:
        """Run the loop until end of input or cancellation.

        Returns:
            RunResult describing how the run ended.

        Raises:
            TransportError: If an inference call fails.  The run is
                terminated; nothing is retried.
            AgentError: If the agent is already running.
        """
        if not self._run_lock.acquire(blocking=False):
            raise AgentError("Agent is already running; inference calls must not overlap")

        self._inference_calls = 0
        self._tool_calls = 0
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="turnloop-inference")
        try:
            end_reason = self._loop(pool)
        finally:
            self._state = AgentState.TERMINATED
            pool.shutdown(wait=False, cancel_futures=True)
            self._run_lock.release()

        if end_reason == EndReason.CANCELLED:
            logger.warning("Run cancelled after %d inference call(s)", self._inference_calls)
        return RunResult(
            end_reason=end_reason,
            inference_calls=self._inference_calls,
            tool_calls=self._tool_calls,
            messages=len(self._conversation),
        )

    def cancel(self) -> None:
        """Signal the run to stop.

        Safe to call from any thread.  In-flight inference or tool calls
        are abandoned at the next poll and the run terminates with
        ``EndReason.CANCELLED``.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def reset(self) -> None:
        """Clear a previous cancellation so the agent can run again.

        The conversation is kept.
        """
        if self._run_lock.locked():
            raise AgentError("Cannot reset a running agent")
        self._cancel_event.clear()
        self._state = AgentState.IDLE

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _loop(self, pool: ThreadPoolExecutor) -> EndReason:
        while True:
            self._state = AgentState.AWAITING_USER
            if self._cancel_event.is_set():
                return EndReason.CANCELLED

            self._output.show_prompt()
            line = self._input.read_line()
            if line is None:
                logger.info("End of input")
                return EndReason.END_OF_INPUT
            if self._cancel_event.is_set():
                return EndReason.CANCELLED

            self._conversation.append(Message.user_text(line))
            if not self._exchange(pool):
                return EndReason.CANCELLED

    def _exchange(self, pool: ThreadPoolExecutor) -> bool:
        """Infer and dispatch until the model stops calling tools.

        Returns:
            False if the exchange was cancelled, True otherwise.
        """
        while True:
            self._state = AgentState.INFERRING
            response = self._infer(pool)
            if response is None:
                return False
            self._inference_calls += 1

            message = response.to_message()
            self._conversation.append(message)
            calls = self._present(message)

            if not calls:
                if response.stop_reason == StopReason.TOOL_USE:
                    logger.warning("Stop reason is tool_use but the response has no tool calls")
                return True
            if response.stop_reason != StopReason.TOOL_USE:
                logger.warning(
                    "Response has %d tool call(s) but stop reason %s",
                    len(calls),
                    response.stop_reason.value,
                )

            self._state = AgentState.DISPATCHING_TOOLS
            outcome = self._dispatcher.dispatch(
                calls,
                cancel_event=self._cancel_event,
                poll_interval=self._config.poll_interval,
            )
            # Appended even when cancelled so every call has its result.
            self._conversation.append(Message.tool_results(outcome.results))
            self._tool_calls += len(calls)
            for call, result in zip(calls, outcome.results):
                self._output.show_tool_result(call, result)
                self._notify(call, result)

            if outcome.cancelled:
                return False

    def _infer(self, pool: ThreadPoolExecutor) -> Response | None:
        """Run one inference call, abandoning it if the run is cancelled.

        Returns:
            The response, or None if cancelled before it arrived.
        """
        history = self._conversation.snapshot()
        future = pool.submit(self._invoker.invoke, history, self._declarations)
        while True:
            try:
                return future.result(timeout=self._config.poll_interval)
            except FutureTimeoutError:
                if self._cancel_event.is_set():
                    future.cancel()
                    logger.warning("Inference call abandoned after cancellation")
                    return None

    def _present(self, message: Message) -> list[ToolCallBlock]:
        """Show text blocks in order and collect the tool calls."""
        calls: list[ToolCallBlock] = []
        for block in message.content:
            if isinstance(block, TextBlock):
                self._output.show_text(block.text)
            elif isinstance(block, ToolCallBlock):
                self._output.show_tool_call(block)
                calls.append(block)
            elif isinstance(block, ToolResultBlock):
                # InferenceInvoker strips these before the message is recorded.
                continue
            else:
                assert_never(block)
        return calls

    def _notify(self, call: ToolCallBlock, result: ToolResultBlock) -> None:
        if self._on_tool_result is None:
            return
        try:
            self._on_tool_result(call, result)
        except Exception:
            logger.debug("on_tool_result callback error", exc_info=True)
