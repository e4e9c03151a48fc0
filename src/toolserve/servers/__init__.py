"""Builtin tool servers and the registry that selects one per process."""

from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.servers.registry import build_server, resolve_server, server_names

__all__ = [
    "ServerDescriptor",
    "ServerInfo",
    "ServerKind",
    "build_server",
    "resolve_server",
    "server_names",
]
