"""Turn loop state types.

AgentState names the protocol states of the loop; EndReason records how a
run reached TERMINATED without raising.
"""

from __future__ import annotations

import enum


class AgentState(str, enum.Enum):
    """States the agent can be in during its lifecycle.

    - ``IDLE``: constructed, ``run()`` not started.
    - ``AWAITING_USER``: waiting for the next user line.
    - ``INFERRING``: an inference call is in flight.
    - ``DISPATCHING_TOOLS``: the tool calls of the last turn are running.
    - ``TERMINATED``: the run is over.
    """

    IDLE = "idle"
    AWAITING_USER = "awaiting_user"
    INFERRING = "inferring"
    DISPATCHING_TOOLS = "dispatching_tools"
    TERMINATED = "terminated"


class EndReason(str, enum.Enum):
    """Why a run ended without an error."""

    END_OF_INPUT = "end_of_input"
    CANCELLED = "cancelled"
