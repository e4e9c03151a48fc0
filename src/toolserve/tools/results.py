"""Result assembler: normalizes tool outcomes into one envelope.

Every outcome (success, partial success, failure) becomes a
:class:`ToolResult` with at least one text block, and every
:class:`ToolResult` converts to an MCP ``CallToolResult`` here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from mcp.types import (
    BlobResourceContents,
    CallToolResult,
    EmbeddedResource,
    ImageContent,
    TextContent,
)

from toolserve.core.errors import (
    CallCancelledError,
    CallTimeoutError,
    EmptyResultError,
    InvalidPayloadError,
    ToolError,
    UpstreamError,
)
from toolserve.tools.base import FilePart, TextBlock, ToolResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolserve.tools.orchestrator import Settled

logger = logging.getLogger(__name__)


def text_result(
    text: str,
    *,
    structured: dict[str, Any] | None = None,
    attachments: Sequence[FilePart] = (),
) -> ToolResult:
    """Build a successful result."""
    return ToolResult(
        content=(TextBlock(text or "(no output)"),),
        structured_content=structured,
        attachments=tuple(attachments),
    )


def error_result(message: str) -> ToolResult:
    """Build an error result with a single diagnostic text block."""
    return ToolResult(content=(TextBlock(message or "Tool call failed."),), is_error=True)


def describe_failure(error: BaseException) -> str:
    """Return the diagnostic text for a failure class."""
    if isinstance(error, CallTimeoutError):
        return f"Request timed out after {error.timeout:g}s."
    if isinstance(error, CallCancelledError):
        return "Request was cancelled."
    if isinstance(error, EmptyResultError):
        return "No search results were returned for this query."
    if isinstance(error, InvalidPayloadError):
        return f"Upstream returned an invalid payload: {error.detail}"
    if isinstance(error, UpstreamError):
        return str(error)
    if isinstance(error, ToolError):
        return str(error)
    if isinstance(error, httpx.HTTPError):
        return f"Network request failed: {error}"
    return f"Tool execution error: {error}"


def failure_result(error: BaseException) -> ToolResult:
    """Build the error result for *error*."""
    return error_result(describe_failure(error))


def partial_result(
    text: str,
    *,
    structured: dict[str, Any] | None,
    attachments: Sequence[Settled[FilePart]],
    label: str = "attachment",
) -> ToolResult:
    """Build a success result from a primary payload and settled sub-calls.

    Failed sub-calls are logged and dropped. The shortfall is not an error.
    """
    kept: list[FilePart] = []
    failed = 0
    for outcome in attachments:
        if outcome.ok:
            kept.append(outcome.value)  # type: ignore[arg-type]
        else:
            failed += 1
            logger.debug("Dropped %s: %s", label, outcome.error)
    if failed:
        logger.warning(
            "%d of %d %s downloads failed; returning %d",
            failed,
            len(attachments),
            label,
            len(kept),
        )
    return text_result(text, structured=structured, attachments=kept)


# ── MCP conversion ───────────────────────────────────────────────


def _split_data_url(payload: str) -> tuple[str, str]:
    """Return (mime, base64 data) from a ``data:`` URL."""
    header, _, data = payload.partition(",")
    mime = header.removeprefix("data:").split(";", 1)[0] or "application/octet-stream"
    return mime, data


def to_call_tool_result(result: ToolResult) -> CallToolResult:
    """Convert a :class:`ToolResult` into the transport's result shape."""
    content: list[Any] = [TextContent(type="text", text=b.text) for b in result.content]
    for part in result.attachments:
        mime, data = _split_data_url(part.payload)
        mime = part.mime or mime
        if mime.startswith("image/"):
            content.append(ImageContent(type="image", data=data, mimeType=mime))
        else:
            content.append(
                EmbeddedResource(
                    type="resource",
                    resource=BlobResourceContents(
                        uri=f"attachment://{part.id}",  # type: ignore[arg-type]
                        mimeType=mime,
                        blob=data,
                    ),
                )
            )
    return CallToolResult(
        content=content,
        structuredContent=result.structured_content,
        isError=result.is_error,
    )
