"""MCP protocol binding for builtin servers."""
