"""Custom Tools

Define your own tools with ToolInput models and the @tool decorator, then
run a scripted two-line session against an OpenAI-compatible endpoint.
The input schema sent to the model is printed first so you can see what
generate_schema() produces.

Demonstrates: ToolInput, @tool, ToolRegistry, generate_schema(),
              ScriptedInput, RecordingOutput, OpenAIClient
"""

import json
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from pydantic import Field

from turnloop import (
    Agent,
    OpenAIClient,
    RecordingOutput,
    ScriptedInput,
    ToolExecutionError,
    ToolInput,
    ToolRegistry,
    generate_schema,
    tool,
)

load_dotenv()

TURNLOOP_OPENAI_API_KEY = os.environ["TURNLOOP_OPENAI_API_KEY"]
TURNLOOP_OPENAI_BASE_URL = os.environ["TURNLOOP_OPENAI_BASE_URL"]
MODEL_ID = "gpt-4o-mini"


class ClockInput(ToolInput):
    utc_offset_hours: int = Field(default=0, ge=-12, le=14, description="Offset from UTC in hours.")


class DivideInput(ToolInput):
    numerator: float
    denominator: float


@tool()
def current_time(args: ClockInput) -> str:
    """Return the current time at the given UTC offset, ISO formatted."""
    now = datetime.now(timezone.utc).timestamp() + args.utc_offset_hours * 3600
    return datetime.fromtimestamp(now, timezone.utc).isoformat()


@tool(description="Divide two numbers.")
def divide(args: DivideInput) -> str:
    if args.denominator == 0:
        raise ToolExecutionError("division by zero")
    return str(args.numerator / args.denominator)


def main():
    print("=" * 60)
    print("Tool schemas")
    print("=" * 60)
    print(json.dumps(generate_schema(DivideInput), indent=2))

    registry = ToolRegistry([current_time, divide])
    output = RecordingOutput()
    lines = ["What time is it in UTC+2?", "What is 22 divided by 7, and 1 divided by 0?"]

    with OpenAIClient(
        api_key=TURNLOOP_OPENAI_API_KEY,
        base_url=TURNLOOP_OPENAI_BASE_URL,
        default_model=MODEL_ID,
    ) as client:
        result = Agent(client, ScriptedInput(lines), output, registry).run()

    print()
    for kind, payload in output.events:
        if kind == "text":
            print(f"  model: {payload}")
        elif kind == "tool_call":
            print(f"  call:  {payload.name} {payload.input}")
        elif kind == "tool_result":
            print(f"  -> {payload.output}{' (error)' if payload.is_error else ''}")
    print(f"\n  {result.inference_calls} inference call(s), {result.tool_calls} tool call(s)")


if __name__ == "__main__":
    main()
