"""Start one builtin server and block until its lifecycle ends."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import TYPE_CHECKING, NoReturn

from toolserve.core.errors import ConfigError
from toolserve.runtime.lifecycle import LifecycleController
from toolserve.runtime.transport import StdioTransport
from toolserve.servers.registry import build_server, resolve_server

if TYPE_CHECKING:
    from toolserve.config.schema import ToolserveConfig
    from toolserve.runtime.transport import Transport
    from toolserve.tools.permissions import PermissionAsker

logger = logging.getLogger(__name__)


async def serve_builtin(
    name: str,
    config: ToolserveConfig,
    *,
    transport: Transport | None = None,
    asker: PermissionAsker | None = None,
) -> int:
    """Resolve, build and serve *name*; return the process exit code.

    Raises:
        UnknownServerError: If *name* is not a builtin server.
        ConfigError: If the server is disabled in *config*.
    """
    kind = resolve_server(name)
    entry = config.servers.get(kind.value)
    if entry is not None and not entry.enabled:
        msg = f"Builtin MCP server {kind.value} is disabled in config"
        raise ConfigError(msg)

    descriptor = build_server(kind, config, asker=asker)
    logger.debug(
        "Built %s with tools: %s",
        descriptor.info.name,
        ", ".join(descriptor.registry.list_names()),
    )
    controller = LifecycleController(descriptor, transport or StdioTransport())
    return await controller.run()


def exit_process(code: int) -> NoReturn:
    """Flush log output and end the process with *code*.

    Skips interpreter shutdown, which would join the stdio reader thread
    and hang until the client closes stdin.
    """
    for handler in logging.getLogger("toolserve").handlers:
        handler.flush()
    sys.stderr.flush()
    os._exit(code)


def start_builtin_server(
    name: str,
    config: ToolserveConfig,
    *,
    transport: Transport | None = None,
    asker: PermissionAsker | None = None,
    exit_when_closed: bool = False,
) -> int:
    """Synchronous entry point used by the CLI.

    With *exit_when_closed*, the process ends as soon as the lifecycle
    reports its exit code, before the event loop tears down.
    """

    async def _main() -> int:
        code = await serve_builtin(name, config, transport=transport, asker=asker)
        if exit_when_closed:
            exit_process(code)
        return code

    return asyncio.run(_main())
