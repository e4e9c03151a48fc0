"""Connection status of configured MCP servers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from toolserve.config.schema import ServerConfig

ServerStatus = Literal["connected", "disabled", "failed"]


def _as_config(entry: ServerConfig | Mapping[str, Any] | None) -> ServerConfig:
    if isinstance(entry, ServerConfig):
        return entry
    return ServerConfig.model_validate(dict(entry or {}))


def evaluate_status(
    configured: Mapping[str, ServerConfig | Mapping[str, Any] | None],
    connected: Mapping[str, object],
) -> dict[str, ServerStatus]:
    """Classify every configured server.

    Disabled wins over everything; otherwise a server is connected if its
    name is in *connected*, and failed if not.
    """
    status: dict[str, ServerStatus] = {}
    for name, entry in configured.items():
        if not _as_config(entry).enabled:
            status[name] = "disabled"
        elif name in connected:
            status[name] = "connected"
        else:
            status[name] = "failed"
    return status
