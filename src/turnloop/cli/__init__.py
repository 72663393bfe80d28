"""Turnloop CLI -- chat with a model that can use local file tools.

This module is NEVER imported from turnloop/__init__.py.
It is only loaded via the ``turnloop`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import TYPE_CHECKING

try:
    import click
    from dotenv import load_dotenv
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install turnloop[cli]"
    ) from None

from pydantic import ValidationError

from turnloop.agent import Agent
from turnloop.cli.formatting import ConsoleOutput, format_error, get_console
from turnloop.exceptions import ConfigError, StartupError, TurnloopError
from turnloop.io import StreamInput
from turnloop.llm import AnthropicClient, OpenAIClient
from turnloop.models.config import AgentConfig, Provider, load_settings
from turnloop.toolkit import builtin_registry

if TYPE_CHECKING:
    from rich.console import Console

    from turnloop.llm.base import HTTPTransport
    from turnloop.models.config import TransportSettings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

_TRANSPORTS: dict[Provider, type[HTTPTransport]] = {
    Provider.ANTHROPIC: AnthropicClient,
    Provider.OPENAI: OpenAIClient,
}


def create_transport(settings: TransportSettings) -> HTTPTransport:
    """Instantiate the HTTP transport selected by ``settings``.

    Raises:
        ConfigError: If the transport cannot be configured (e.g., no key).
    """
    transport_cls = _TRANSPORTS[settings.provider]
    return transport_cls(base_url=settings.base_url, default_model=settings.model)


@click.command()
@click.option(
    "--provider",
    type=click.Choice([p.value for p in Provider], case_sensitive=False),
    default=None,
    help="Inference API to talk to (env: TURNLOOP_PROVIDER).",
)
@click.option("--model", default=None, help="Model identifier (env: TURNLOOP_MODEL).")
@click.option("--base-url", default=None, help="API base URL (env: TURNLOOP_BASE_URL).")
@click.option(
    "--max-tokens",
    type=int,
    default=None,
    help="Maximum output tokens per model turn (env: TURNLOOP_MAX_TOKENS).",
)
@click.option(
    "--workdir",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Directory the file tools may read.",
)
@click.option("--system", "system_prompt", default=None, help="System prompt.")
@click.option("-v", "--verbose", is_flag=True, help="Show tool calls and results.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for stderr logging (env: TURNLOOP_LOG_LEVEL).",
)
def cli(
    provider: str | None,
    model: str | None,
    base_url: str | None,
    max_tokens: int | None,
    workdir: str,
    system_prompt: str | None,
    verbose: bool,
    log_level: str | None,
) -> None:
    """Chat with a model that can read files in WORKDIR."""
    load_dotenv()
    console = get_console()

    try:
        settings = load_settings()
        overrides = {
            "provider": provider.lower() if provider else None,
            "model": model,
            "base_url": base_url,
            "max_tokens": max_tokens,
            "log_level": log_level,
        }
        settings = settings.model_validate(
            {**settings.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        config = AgentConfig(
            max_tokens=settings.max_tokens,
            model=settings.model,
            system_prompt=system_prompt,
        )
        transport = create_transport(settings)
    except ValidationError as exc:
        format_error(str(ConfigError(f"Invalid configuration: {exc}")), console)
        raise SystemExit(EXIT_ERROR) from None
    except StartupError as exc:
        format_error(str(exc), console)
        raise SystemExit(EXIT_ERROR) from None

    with transport:
        try:
            agent = Agent(
                transport,
                StreamInput(sys.stdin),
                ConsoleOutput(console, verbose=verbose),
                builtin_registry(workdir),
                config=config,
            )
        except StartupError as exc:
            format_error(str(exc), console)
            raise SystemExit(EXIT_ERROR) from None

        console.print(config.greeting)
        code = _run(agent, console)

    if code != EXIT_OK:
        raise SystemExit(code)


def _run(agent: Agent, console: Console) -> int:
    """Run the agent on a worker thread so Ctrl-C can cancel it.

    Returns:
        The process exit code.
    """
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["result"] = agent.run()
        except Exception as exc:
            outcome["error"] = exc

    worker = threading.Thread(target=target, name="turnloop-agent", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        agent.cancel()
        worker.join(timeout=2.0)
        console.print()
        console.print("[yellow]Cancelled.[/yellow]")
        return EXIT_CANCELLED

    error = outcome.get("error")
    if error is not None:
        if isinstance(error, TurnloopError):
            format_error(str(error), console)
            return EXIT_ERROR
        raise error  # type: ignore[misc]

    result = outcome["result"]
    logger.info("Session ended: %s", result)
    if getattr(result, "cancelled", False):
        return EXIT_CANCELLED
    console.print()
    return EXIT_OK
