"""Schema adapter: pydantic models to MCP tool registrations.

Conversion happens once per tool, at registration time. Calls only pay
for argument validation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.types import Tool
from pydantic import BaseModel, ValidationError

from toolserve.core.errors import ToolValidationError

if TYPE_CHECKING:
    from toolserve.tools.base import ToolDefinition


def tool_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Return the flat object schema the transport expects for *model*."""
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema["type"] = "object"
    schema.setdefault("properties", {})
    return schema


def to_mcp_tool(definition: ToolDefinition) -> Tool:
    """Build the MCP ``Tool`` advertised for *definition*."""
    output_schema = None
    if definition.output_model is not None:
        output_schema = tool_json_schema(definition.output_model)
    return Tool(
        name=definition.name,
        title=definition.title,
        description=definition.description,
        inputSchema=tool_json_schema(definition.input_model),
        outputSchema=output_schema,
    )


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as ``field: message`` pairs."""
    parts: list[str] = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_arguments(model: type[BaseModel], arguments: dict[str, Any] | None) -> BaseModel:
    """Validate raw call arguments against *model*.

    Raises:
        ToolValidationError: If the arguments do not satisfy the model.
    """
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        raise ToolValidationError(format_validation_error(e)) from e
