"""File Chat

A console chat where the model can read and list files in the current
directory.  Ask "what's in pyproject.toml?" and watch the model call
read_file, get the contents back, and answer.

Tool calls and results are printed as they happen via on_tool_result.

Demonstrates: Agent, builtin_registry(), AgentConfig, StreamInput,
              on_tool_result, RunResult
"""

import os
import sys

from dotenv import load_dotenv

from turnloop import Agent, AgentConfig, AnthropicClient, StreamInput, builtin_registry

load_dotenv()

ANTHROPIC_API_KEY = os.environ["ANTHROPIC_API_KEY"]
MODEL_ID = "claude-3-7-sonnet-latest"


class PlainOutput:
    """Minimal OutputSink printing straight to stdout."""

    def show_prompt(self):
        print("You: ", end="", flush=True)

    def show_text(self, text):
        print(f"Claude: {text}")

    def show_tool_call(self, call):
        print(f"  [tool] {call.name}({call.input})")

    def show_tool_result(self, call, result):
        pass


def log_result(call, result):
    status = "error" if result.is_error else "ok"
    print(f"  [tool] {call.name} -> {status} ({len(result.output)} chars)")


def main():
    config = AgentConfig(max_tokens=1024, model=MODEL_ID)

    with AnthropicClient(api_key=ANTHROPIC_API_KEY) as client:
        agent = Agent(
            client,
            StreamInput(sys.stdin),
            PlainOutput(),
            builtin_registry("."),
            config=config,
            on_tool_result=log_result,
        )
        print(config.greeting)
        try:
            result = agent.run()
        except KeyboardInterrupt:
            agent.cancel()
            return

    print()
    print(f"  Inference calls: {result.inference_calls}")
    print(f"  Tool calls:      {result.tool_calls}")
    print(f"  Messages:        {result.messages}")


if __name__ == "__main__":
    main()
