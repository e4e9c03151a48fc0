"""Transports that carry the MCP session for a builtin server."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from mcp.server.stdio import stdio_server

from toolserve.core.errors import TransportError

if TYPE_CHECKING:
    from mcp.server import Server


class Transport(Protocol):
    """A channel that serves one MCP server.

    ``serve`` returns when the channel closes normally and raises
    :class:`TransportError` when it fails.
    """

    async def serve(self, server: Server) -> None: ...


class StdioTransport:
    """JSON-RPC over this process's stdin/stdout."""

    async def serve(self, server: Server) -> None:
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options(),
                )
        except Exception as e:
            msg = f"stdio transport failed: {e}"
            raise TransportError(msg) from e
