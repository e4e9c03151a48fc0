"""MCP binding: expose a :class:`ServerDescriptor` through ``mcp.server.Server``."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from mcp.server import Server
from mcp.types import CallToolResult, Tool

from toolserve.core import ids
from toolserve.tools.base import InvocationContext
from toolserve.tools.results import to_call_tool_result

if TYPE_CHECKING:
    from toolserve.servers.base import ServerDescriptor

logger = logging.getLogger(__name__)

# Request ``_meta`` keys copied into ``InvocationContext.extra``.
_META_KEYS: dict[str, str] = {
    "modelID": "model_id",
    "model_id": "model_id",
    "sessionID": "session_id",
    "messageID": "message_id",
}


def _request_meta(server: Server) -> tuple[str | None, dict[str, Any]]:
    """Return (request id, meta dict) for the request being handled."""
    try:
        request_ctx = server.request_context
    except LookupError:
        return None, {}
    meta: dict[str, Any] = {}
    if request_ctx.meta is not None:
        meta = request_ctx.meta.model_dump(exclude_none=True)
    return str(request_ctx.request_id), meta


def make_context(session_id: str, request_id: str | None, meta: dict[str, Any]) -> InvocationContext:
    """Build a fresh invocation context for one call."""
    extra: dict[str, Any] = {}
    for key, value in meta.items():
        extra[_META_KEYS.get(key, key)] = value
    return InvocationContext(
        session_id=str(extra.pop("session_id", session_id)),
        message_id=str(extra.pop("message_id", ids.ascending("message"))),
        call_id=request_id or ids.ascending("call"),
        extra=extra,
    )


def create_mcp_server(descriptor: ServerDescriptor) -> Server:
    """Create the MCP server for *descriptor*.

    Tool shapes were computed at registration; ``list_tools`` only returns
    them. Argument validation happens in the registry, so the SDK's own
    input validation is turned off.
    """
    info = descriptor.info
    server: Server = Server(info.name, version=info.version, instructions=info.instructions)
    tools = descriptor.registry.list_tools()
    session_id = ids.ascending("session")

    @server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
    async def list_tools() -> list[Tool]:
        """List available MCP tools."""
        return tools

    @server.call_tool(validate_input=False)  # type: ignore[untyped-decorator]
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Dispatch a tool call through the registry."""
        request_id, meta = _request_meta(server)
        ctx = make_context(session_id, request_id, meta)
        try:
            result = await descriptor.registry.call(name, arguments, ctx)
        except asyncio.CancelledError:
            ctx.abort.abort("cancelled by client")
            raise
        return to_call_tool_result(result)

    return server
