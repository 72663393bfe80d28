"""Toolkit data models.

ToolDeclaration is what the model sees; Tool is a registry entry pairing a
declaration with its input model and executable function.
"""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from turnloop.exceptions import SchemaGenerationError, ToolInputError
from turnloop.toolkit.schema import generate_schema

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDeclaration:
    """A single tool declaration for LLM consumption.

    Attributes:
        name: Tool name, unique within a registry.
        description: What the tool does and when to use it.
        input_schema: JSON Schema dict describing the tool's input.
    """

    name: str
    description: str
    input_schema: dict

    def to_anthropic(self) -> dict:
        """Render as an entry of the Messages API ``tools`` list."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai(self) -> dict:
        """Render as a chat completions ``function`` tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass(frozen=True)
class Tool:
    """A registered tool: declaration, input model and function.

    ``execute`` receives the validated input model instance and returns the
    text handed back to the model.  Raising signals failure.
    """

    declaration: ToolDeclaration
    input_model: type[BaseModel]
    execute: Callable[[Any], object]

    @classmethod
    def build(
        cls,
        name: str,
        description: str,
        input_model: type[BaseModel],
        execute: Callable[[Any], object],
    ) -> Tool:
        """Create a Tool, generating its schema from ``input_model``.

        Raises:
            SchemaGenerationError: If the schema cannot be generated or the
                name/function is unusable.
        """
        if not name:
            raise SchemaGenerationError("Tool name must be a non-empty string")
        if not callable(execute):
            raise SchemaGenerationError(f"Tool '{name}' execute is not callable")
        schema = generate_schema(input_model)
        return cls(
            declaration=ToolDeclaration(
                name=name, description=description, input_schema=schema
            ),
            input_model=input_model,
            execute=execute,
        )

    @property
    def name(self) -> str:
        return self.declaration.name

    def validate(self, raw: object) -> BaseModel:
        """Decode raw model-produced input into the tool's input model.

        A JSON string is accepted as well, so transports that could not
        parse arguments still get a precise validation message.

        Raises:
            ToolInputError: If the input does not match the schema.
        """
        try:
            if isinstance(raw, (str, bytes)):
                return self.input_model.model_validate_json(raw)
            return self.input_model.model_validate(raw)
        except ValidationError as exc:
            raise ToolInputError(self.name, format_validation_error(self.name, exc)) from exc


def format_validation_error(tool_name: str, exc: ValidationError) -> str:
    """Render a pydantic ValidationError as one compact line for the model."""
    problems = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", ()))
        problems.append(f"{loc or '<input>'}: {err.get('msg', 'invalid')}")
    return f"invalid input for {tool_name}: " + "; ".join(problems)


def tool(
    name: str | None = None,
    description: str | None = None,
) -> Callable[[Callable[[Any], object]], Tool]:
    """Decorator building a Tool from a one-argument function.

    The parameter must be annotated with the tool's input model; the
    docstring is used as description when none is given.

    Usage::

        @tool(name="echo")
        def echo(args: EchoInput) -> str:
            \"\"\"Repeat the given text.\"\"\"
            return args.text
    """

    def decorator(fn: Callable[[Any], object]) -> Tool:
        params = list(inspect.signature(fn).parameters)
        if len(params) != 1:
            raise SchemaGenerationError(
                f"Tool function {fn.__name__} must take exactly one argument"
            )
        try:
            hints = typing.get_type_hints(fn)
        except NameError as exc:
            raise SchemaGenerationError(
                f"Cannot resolve annotations of {fn.__name__}: {exc}"
            ) from exc
        input_model = hints.get(params[0])
        if input_model is None:
            raise SchemaGenerationError(
                f"Tool function {fn.__name__} must annotate its argument "
                f"with an input model"
            )
        return Tool.build(
            name or fn.__name__,
            description or inspect.getdoc(fn) or "",
            input_model,
            fn,
        )

    return decorator
