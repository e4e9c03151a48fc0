"""Tool data types.

Defines the immutable tool definition, the per-call invocation context,
and the uniform result envelope every tool call produces.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel

from toolserve.core.cancel import AbortSignal


@dataclass(frozen=True, slots=True)
class TextBlock:
    """Human-readable content block."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True, slots=True)
class FilePart:
    """A file attached to a tool result.

    ``payload`` is a ``data:`` URL carrying the base64-encoded bytes.
    """

    id: str
    session_id: str
    message_id: str
    mime: str
    payload: str


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Uniform outcome of a tool call.

    ``content`` always holds at least one text block, even when structured
    content is present. Error results carry neither structured content nor
    attachments.
    """

    content: tuple[TextBlock, ...]
    structured_content: dict[str, Any] | None = None
    attachments: tuple[FilePart, ...] = ()
    is_error: bool = False

    def __post_init__(self) -> None:
        if not self.content:
            msg = "ToolResult.content must contain at least one block"
            raise ValueError(msg)
        if self.is_error and (self.structured_content is not None or self.attachments):
            msg = "Error results cannot carry structured content or attachments"
            raise ValueError(msg)

    @property
    def text(self) -> str:
        """All text blocks joined by blank lines."""
        return "\n\n".join(block.text for block in self.content)


@dataclass(frozen=True, slots=True)
class InvocationContext:
    """Per-call identifiers and the cancellation token.

    Created fresh for every call and never reused.
    """

    session_id: str
    message_id: str
    call_id: str
    abort: AbortSignal = field(default_factory=AbortSignal)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))


ToolHandler = Callable[[Any, InvocationContext], Awaitable[ToolResult]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Declarative description of a tool plus its handler.

    ``input_model`` validates raw call arguments before ``handler`` runs;
    ``output_model``, when set, describes ``structured_content``.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    title: str | None = None
    output_model: type[BaseModel] | None = None
