"""Agent package -- the turn loop and its state/result types."""

from turnloop.agent.config import AgentState, EndReason
from turnloop.agent.loop import Agent
from turnloop.agent.models import RunResult

__all__ = [
    "Agent",
    "AgentState",
    "EndReason",
    "RunResult",
]
