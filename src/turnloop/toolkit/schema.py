"""Input schema generation for tools.

Tools declare their input as a ``ToolInput`` subclass: a frozen pydantic
model that forbids undeclared fields.  ``generate_schema()`` turns that
declaration into a self-contained JSON Schema object that is both sent to
the model and mirrored by local validation.

The generated schema is fully inlined (no ``$ref``/``$defs``) and every
object level disallows additional properties.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, PydanticUserError

from turnloop.exceptions import SchemaGenerationError

logger = logging.getLogger(__name__)

# Keywords whose values are data, not sub-schemas.
_DATA_KEYWORDS = frozenset({"default", "examples", "enum", "const"})
# Keywords whose values map names to sub-schemas.
_MAPPING_KEYWORDS = frozenset({"properties", "patternProperties"})


class ToolInput(BaseModel):
    """Base class for tool input declarations.

    Usage::

        class ReadFileInput(ToolInput):
            path: str = Field(description="Relative path of the file")
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


def generate_schema(input_model: type[BaseModel]) -> dict[str, Any]:
    """Derive the JSON Schema for a tool's input model.

    Args:
        input_model: A pydantic model class that forbids extra fields
            (normally a ``ToolInput`` subclass).

    Returns:
        A fresh schema dict with ``type``, ``properties``, ``required``
        (when any field is required) and ``additionalProperties: false``.

    Raises:
        SchemaGenerationError: If the model is not a pydantic model, allows
            extra fields, is recursive, or cannot be expressed as a JSON
            Schema object.
    """
    if not (isinstance(input_model, type) and issubclass(input_model, BaseModel)):
        raise SchemaGenerationError(
            f"Tool input must be a pydantic model class, got {input_model!r}"
        )
    model_name = input_model.__name__
    if input_model.model_config.get("extra") != "forbid":
        raise SchemaGenerationError(
            f"{model_name} must forbid extra fields; subclass ToolInput or "
            f"set model_config = ConfigDict(extra='forbid')"
        )

    try:
        raw = input_model.model_json_schema()
    except PydanticUserError as exc:
        raise SchemaGenerationError(
            f"Cannot build a JSON schema for {model_name}: {exc}"
        ) from exc

    defs = raw.pop("$defs", {})
    schema = _inline(raw, defs, seen=(model_name,))

    if schema.get("type") != "object":
        raise SchemaGenerationError(
            f"{model_name} does not describe a JSON object"
        )
    schema.setdefault("properties", {})
    logger.debug(
        "Generated schema for %s with %d properties",
        model_name,
        len(schema["properties"]),
    )
    return schema


def _inline(node: Any, defs: dict[str, Any], seen: tuple[str, ...]) -> Any:
    """Recursively resolve ``$ref`` pointers and normalise object schemas."""
    if isinstance(node, list):
        return [_inline(item, defs, seen) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        name = node["$ref"].rsplit("/", 1)[-1]
        if name in seen:
            raise SchemaGenerationError(
                f"Recursive model '{name}' cannot be inlined into a tool schema"
            )
        if name not in defs:
            raise SchemaGenerationError(f"Unresolvable schema reference: {node['$ref']}")
        resolved = _inline(defs[name], defs, seen + (name,))
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        resolved.update(_inline(siblings, defs, seen))
        return resolved

    out: dict[str, Any] = {}
    for key, value in node.items():
        if key == "title":
            continue
        if key in _DATA_KEYWORDS:
            out[key] = copy.deepcopy(value)
        elif key in _MAPPING_KEYWORDS and isinstance(value, dict):
            out[key] = {name: _inline(sub, defs, seen) for name, sub in value.items()}
        else:
            out[key] = _inline(value, defs, seen)

    if out.get("type") == "object" and "additionalProperties" not in out:
        out["additionalProperties"] = False
    return out
