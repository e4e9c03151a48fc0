"""Core types, errors, and shared utilities."""

from toolserve.core.cancel import AbortSignal, run_with_deadline
from toolserve.core.errors import (
    AccessDeniedError,
    CallAbortedError,
    CallCancelledError,
    CallTimeoutError,
    ConfigError,
    DuplicateToolError,
    EmptyResultError,
    InvalidPayloadError,
    LifecycleError,
    PayloadTooLargeError,
    PermissionDeniedError,
    RegistrationError,
    RegistryFrozenError,
    ToolError,
    ToolserveError,
    ToolValidationError,
    TransportError,
    UnknownServerError,
    UpstreamError,
)

__all__ = [
    "AbortSignal",
    "AccessDeniedError",
    "CallAbortedError",
    "CallCancelledError",
    "CallTimeoutError",
    "ConfigError",
    "DuplicateToolError",
    "EmptyResultError",
    "InvalidPayloadError",
    "LifecycleError",
    "PayloadTooLargeError",
    "PermissionDeniedError",
    "RegistrationError",
    "RegistryFrozenError",
    "ToolError",
    "ToolValidationError",
    "ToolserveError",
    "TransportError",
    "UnknownServerError",
    "UpstreamError",
    "run_with_deadline",
]
