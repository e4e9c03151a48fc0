"""Server kinds and descriptors."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from toolserve import __version__

if TYPE_CHECKING:
    from toolserve.tools.base import ToolDefinition
    from toolserve.tools.registry import ToolRegistry


class ServerKind(enum.Enum):
    """The closed set of builtin servers."""

    SEQUENTIAL = "sequential"
    SKETCH = "sketch"
    DUCKDUCKGO = "duckduckgo"
    WEBSEARCH = "websearch"


@dataclass(frozen=True, slots=True)
class ServerInfo:
    """What the server advertises on initialization."""

    name: str
    instructions: str
    version: str = __version__


@dataclass(frozen=True, slots=True)
class ServerDescriptor:
    """One builtin server: identity plus its (closed) tool registry."""

    kind: ServerKind
    info: ServerInfo
    registry: ToolRegistry

    @classmethod
    def build(
        cls,
        kind: ServerKind,
        info: ServerInfo,
        tools: list[ToolDefinition],
    ) -> ServerDescriptor:
        """Register every tool, then close the registry.

        Raises:
            DuplicateToolError: If two tools share a name.
        """
        from toolserve.tools.registry import ToolRegistry

        registry = ToolRegistry()
        for definition in tools:
            registry.register(definition)
        registry.freeze()
        return cls(kind=kind, info=info, registry=registry)
