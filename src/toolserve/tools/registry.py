"""Tool registry — per-server mapping from tool name to definition.

Provides registration (with duplicate rejection), lookup, listing of the
MCP tool shapes, and guarded execution of tool calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from toolserve.core.errors import (
    DuplicateToolError,
    RegistryFrozenError,
    ToolValidationError,
)
from toolserve.tools.base import ToolResult
from toolserve.tools.results import error_result, failure_result
from toolserve.tools.schema import format_validation_error, parse_arguments, to_mcp_tool

if TYPE_CHECKING:
    from mcp.types import Tool

    from toolserve.tools.base import InvocationContext, ToolDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    """A definition together with its precomputed transport shape."""

    definition: ToolDefinition
    mcp_tool: Tool


class ToolRegistry:
    """Registry for the tools of one server.

    Closed once :meth:`freeze` is called; the lifecycle freezes it before
    the transport connects.
    """

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}
        self._frozen = False

    def register(self, definition: ToolDefinition) -> None:
        """Register a tool.

        Raises:
            DuplicateToolError: If a tool with the same name is already registered.
            RegistryFrozenError: If the registry has been frozen.
        """
        if self._frozen:
            msg = f"Cannot register {definition.name}: registry is frozen"
            raise RegistryFrozenError(msg)
        if definition.name in self._tools:
            raise DuplicateToolError(definition.name)
        self._tools[definition.name] = RegisteredTool(
            definition=definition,
            mcp_tool=to_mcp_tool(definition),
        )
        logger.debug("Registered tool: %s", definition.name)

    def freeze(self) -> None:
        """Close the registry to further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> RegisteredTool:
        """Get a registered tool by name.

        Raises:
            KeyError: If the tool is not found.
        """
        if name not in self._tools:
            msg = f"Tool not found: {name}"
            raise KeyError(msg)
        return self._tools[name]

    def list_tools(self) -> list[Tool]:
        """Return the MCP tool shapes for all registered tools."""
        return [t.mcp_tool for t in self._tools.values()]

    def list_definitions(self) -> list[ToolDefinition]:
        return [t.definition for t in self._tools.values()]

    async def call(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        ctx: InvocationContext,
    ) -> ToolResult:
        """Validate arguments, run the handler, and return its result.

        Never raises for per-call problems: unknown tools, invalid
        arguments, and handler failures all come back as a
        :class:`ToolResult` with ``is_error=True``. Task cancellation
        propagates.
        """
        try:
            registered = self.get(name)
        except KeyError:
            return error_result(f"Tool not found: {name}")

        definition = registered.definition
        try:
            params = parse_arguments(definition.input_model, arguments)
        except ToolValidationError as exc:
            logger.info("Rejected %s call %s: %s", name, ctx.call_id, exc)
            return error_result(f"Input validation error: {exc}")

        try:
            result = await definition.handler(params, ctx)
        except Exception as exc:
            logger.warning("Tool %s call %s failed: %s", name, ctx.call_id, exc)
            return failure_result(exc)

        if not isinstance(result, ToolResult):
            return error_result(
                f"Unexpected return type from tool {name}: {type(result).__name__}"
            )

        if definition.output_model is not None and not result.is_error:
            try:
                definition.output_model.model_validate(result.structured_content or {})
            except ValidationError as exc:
                logger.error("Tool %s produced invalid output: %s", name, exc)
                return error_result(f"Output validation error: {format_validation_error(exc)}")

        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list_names(self) -> list[str]:
        """Return names of all registered tools."""
        return list(self._tools.keys())
