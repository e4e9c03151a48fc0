"""Permission collaborator.

Some tools ask before they run. The prompt itself lives outside this
process; tools only see the :class:`PermissionAsker` protocol, which blocks
until the request is granted or denied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from toolserve.core.errors import PermissionDeniedError

if TYPE_CHECKING:
    from toolserve.config.schema import PermissionPolicy


@dataclass(frozen=True, slots=True)
class PermissionRequest:
    """What a tool wants to do, shown to whoever grants permission."""

    type: str
    session_id: str
    message_id: str
    call_id: str
    title: str
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PermissionAsker(Protocol):
    """Grants or denies permission requests."""

    async def ask(self, request: PermissionRequest) -> bool:
        """Return True if the request is granted."""
        ...


class StaticPermissionAsker:
    """Answers every request the same way. Useful for headless runs."""

    def __init__(self, granted: bool = True) -> None:
        self._granted = granted
        self.requests: list[PermissionRequest] = []

    async def ask(self, request: PermissionRequest) -> bool:
        self.requests.append(request)
        return self._granted


async def require_permission(
    policy: PermissionPolicy,
    asker: PermissionAsker | None,
    request: PermissionRequest,
) -> None:
    """Apply *policy* to *request*.

    Raises:
        PermissionDeniedError: If the policy denies, no asker is available
            for an ``ask`` policy, or the asker refuses.
    """
    if policy == "allow":
        return
    if policy == "deny":
        msg = f"Permission denied by configuration: {request.title}"
        raise PermissionDeniedError(msg)
    if asker is None:
        msg = f"Permission required but no prompt is available: {request.title}"
        raise PermissionDeniedError(msg)
    if not await asker.ask(request):
        msg = f"Permission denied: {request.title}"
        raise PermissionDeniedError(msg)
