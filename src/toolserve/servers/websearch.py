"""Web search server: exposes the Serper-backed ``websearch`` tool."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.tools.websearch import WebSearchTool

if TYPE_CHECKING:
    import httpx

    from toolserve.config.schema import ToolserveConfig
    from toolserve.tools.permissions import PermissionAsker


def create_websearch_server(
    config: ToolserveConfig,
    *,
    asker: PermissionAsker | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> ServerDescriptor:
    tool = WebSearchTool(
        config.tools.websearch,
        permission=config.permission.websearch,
        asker=asker,
        http_transport=http_transport,
    )
    return ServerDescriptor.build(
        ServerKind.WEBSEARCH,
        ServerInfo(
            name="toolserve-websearch",
            instructions=(
                "Searches the web with Serper and can attach a few result images. "
                "Scope searches with includeDomains and excludeDomains."
            ),
        ),
        [tool.definition()],
    )
