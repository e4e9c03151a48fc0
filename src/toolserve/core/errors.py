"""Exception hierarchy for toolserve.

Every module imports from here. The hierarchy is:

    ToolserveError
    ├── ConfigError
    ├── UnknownServerError(name)
    ├── RegistrationError
    │   ├── DuplicateToolError(name)
    │   └── RegistryFrozenError
    ├── LifecycleError
    ├── TransportError
    └── ToolError
        ├── ToolValidationError
        ├── AccessDeniedError
        ├── PermissionDeniedError
        ├── UpstreamError(status, detail)
        │   ├── InvalidPayloadError
        │   └── EmptyResultError
        ├── CallAbortedError(source)
        │   ├── CallTimeoutError
        │   └── CallCancelledError
        └── PayloadTooLargeError(size, limit)

Per-call errors (``ToolError``) are converted to error results at the
registry boundary. Only ``TransportError`` may end the process.
"""

from __future__ import annotations


class ToolserveError(Exception):
    """Base exception for all toolserve errors."""


# ─── Startup Errors ───────────────────────────────────────────


class ConfigError(ToolserveError):
    """Invalid configuration."""


class UnknownServerError(ToolserveError):
    """Requested builtin server does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown builtin MCP server: {name}")


# ─── Registration Errors ──────────────────────────────────────


class RegistrationError(ToolserveError):
    """Base for tool registration errors."""


class DuplicateToolError(RegistrationError, ValueError):
    """A tool with the same name is already registered on this server."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class RegistryFrozenError(RegistrationError):
    """Registration attempted after the transport went live."""


# ─── Process Errors ───────────────────────────────────────────


class LifecycleError(ToolserveError):
    """Invalid lifecycle state transition."""


class TransportError(ToolserveError):
    """The hosting channel failed. Process-fatal."""


# ─── Tool Errors ──────────────────────────────────────────────


class ToolError(ToolserveError):
    """Base for per-call tool errors. Never fatal to the server."""


class ToolValidationError(ToolError):
    """Tool arguments failed validation."""


class AccessDeniedError(ToolError):
    """Caller lacks the capability required by the tool."""


class PermissionDeniedError(ToolError):
    """The permission collaborator rejected the call."""


class UpstreamError(ToolError):
    """An external dependency returned a non-success response."""

    def __init__(self, status: int | None, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        msg = "Upstream request failed"
        if status is not None:
            msg += f" ({status})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidPayloadError(UpstreamError):
    """Upstream responded successfully but the body could not be used."""

    def __init__(self, detail: str = "invalid payload") -> None:
        super().__init__(None, detail)


class EmptyResultError(UpstreamError):
    """Upstream returned no results for the primary query."""

    def __init__(self, detail: str = "no results") -> None:
        super().__init__(None, detail)


class CallAbortedError(ToolError):
    """An outbound call was aborted before completing.

    ``source`` is ``"caller"`` when the invocation's abort signal fired and
    ``"timeout"`` when the internal budget ran out.
    """

    source: str = "caller"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class CallTimeoutError(CallAbortedError):
    """Internal time budget exceeded."""

    source = "timeout"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Call timed out after {timeout:g}s")


class CallCancelledError(CallAbortedError):
    """The caller cancelled the invocation."""

    source = "caller"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        msg = "Call cancelled by caller"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayloadTooLargeError(ToolError):
    """A downloaded artifact exceeds the configured byte cap."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Payload of {size} bytes exceeds maximum of {limit} bytes")
