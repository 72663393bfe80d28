"""Agent run result model."""

from __future__ import annotations

from dataclasses import dataclass

from turnloop.agent.config import AgentState, EndReason


@dataclass(frozen=True)
class RunResult:
    """Final result of an agent run.

    Frozen: the result is immutable once the run completes.

    Attributes:
        end_reason: End of input or cancellation.
        state: Always ``AgentState.TERMINATED``.
        inference_calls: Inference calls completed during the run.
        tool_calls: Tool calls dispatched during the run.
        messages: Length of the conversation when the run ended.
    """

    end_reason: EndReason
    state: AgentState = AgentState.TERMINATED
    inference_calls: int = 0
    tool_calls: int = 0
    messages: int = 0

    @property
    def cancelled(self) -> bool:
        return self.end_reason == EndReason.CANCELLED
