"""toolserve - builtin MCP tool-server runtime."""

__version__ = "0.3.0"
