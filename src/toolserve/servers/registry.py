"""Server registry: resolves a builtin server name and builds it.

The set of servers is closed (:class:`ServerKind`); names are resolved
once at startup and anything unknown is rejected before any server is
constructed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from toolserve.core.errors import UnknownServerError
from toolserve.servers.base import ServerKind

if TYPE_CHECKING:
    import httpx

    from toolserve.config.schema import ToolserveConfig
    from toolserve.servers.base import ServerDescriptor
    from toolserve.tools.permissions import PermissionAsker


def server_names() -> list[str]:
    """Names accepted by :func:`resolve_server`, in declaration order."""
    return [kind.value for kind in ServerKind]


def resolve_server(name: str) -> ServerKind:
    """Map a CLI name to its :class:`ServerKind`.

    Raises:
        UnknownServerError: If *name* is not a builtin server.
    """
    try:
        return ServerKind(name)
    except ValueError:
        raise UnknownServerError(name) from None


def build_server(
    kind: ServerKind,
    config: ToolserveConfig,
    *,
    asker: PermissionAsker | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> ServerDescriptor:
    """Construct the descriptor for *kind* with all of its tools registered."""
    if kind is ServerKind.SEQUENTIAL:
        from toolserve.servers.sequential import create_sequential_server

        return create_sequential_server(config)
    if kind is ServerKind.SKETCH:
        from toolserve.servers.sketch import create_sketch_server

        return create_sketch_server(config)
    if kind is ServerKind.DUCKDUCKGO:
        from toolserve.servers.duckduckgo import create_duckduckgo_server

        return create_duckduckgo_server(config, http_transport=http_transport)
    if kind is ServerKind.WEBSEARCH:
        from toolserve.servers.websearch import create_websearch_server

        return create_websearch_server(config, asker=asker, http_transport=http_transport)
    assert_never(kind)
