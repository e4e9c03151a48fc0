"""Process runtime: transport, lifecycle and the startup entry point."""

from toolserve.runtime.lifecycle import LifecycleController, LifecycleState
from toolserve.runtime.runner import serve_builtin, start_builtin_server
from toolserve.runtime.transport import StdioTransport, Transport

__all__ = [
    "LifecycleController",
    "LifecycleState",
    "StdioTransport",
    "Transport",
    "serve_builtin",
    "start_builtin_server",
]
