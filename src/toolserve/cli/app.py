"""Command-line entry point: ``toolserve SERVER``.

Starts exactly one builtin MCP server on stdio. The process only exits
on its own for startup errors; afterwards the lifecycle decides the exit
code (0 for a signal or a closed transport, 1 for a transport failure)
and the process ends right away, without waiting on the stdin reader.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, NoReturn

import click

from toolserve import __version__
from toolserve.config.loader import load_config
from toolserve.core.errors import ConfigError, ToolserveError
from toolserve.core.log import configure_logging
from toolserve.servers.registry import server_names

if TYPE_CHECKING:
    from toolserve.config.schema import ToolserveConfig

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> NoReturn:
    """Print an error message to stderr and exit 1."""
    click.echo(msg, err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> ToolserveConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(f"Error: {e}")


# ── Command ──────────────────────────────────────────────────────


@click.command()
@click.version_option(version=__version__, prog_name="toolserve")
@click.argument("server", required=False)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to config file.",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.option("--list", "list_servers", is_flag=True, help="List builtin servers and exit.")
def cli(
    server: str | None,
    config_path: str | None,
    log_level: str | None,
    list_servers: bool,
) -> None:
    """Run a builtin MCP tool server over stdio."""
    if list_servers:
        for name in server_names():
            click.echo(name)
        return

    if not server:
        _error("Missing builtin MCP server name.")

    config = _load_config(config_path)
    try:
        configure_logging(config.logging, log_level)
    except (ValueError, OSError) as e:
        _error(f"Error: {e}")

    from toolserve.runtime.runner import start_builtin_server

    try:
        code = start_builtin_server(server, config, exit_when_closed=True)
    except ToolserveError as e:
        _error(f"Failed to start builtin MCP server {server}: {e}")
    sys.exit(code)
