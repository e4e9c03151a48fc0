"""Sketchpad server: ASCII layout sketches from textual prompts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.tools.base import ToolDefinition
from toolserve.tools.results import text_result

if TYPE_CHECKING:
    from toolserve.config.schema import ToolserveConfig
    from toolserve.tools.base import InvocationContext, ToolResult

Accent = Literal["grid", "wave", "circuit"]

_MOTIFS: dict[str, str] = {"grid": "▒", "wave": "≈", "circuit": "╂"}

MIN_WIDTH = 32
MAX_WIDTH = 68


class SketchInput(BaseModel):
    prompt: str = Field(min_length=3, description="Describe the visual you want.")
    accent: Accent = Field(default="grid", description="Border motif.")


class SketchOutput(BaseModel):
    lines: list[str] = Field(min_length=1)


def _wrap(words: list[str], width: int) -> list[str]:
    wrapped: list[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}" if current else word
        if len(candidate) > width:
            if current:
                wrapped.append(current)
            current = word
            continue
        current = candidate
    if current:
        wrapped.append(current)
    return wrapped


def render_sketch(prompt: str, accent: Accent = "grid") -> list[str]:
    """Render *prompt* as a framed box of lines."""
    motif = _MOTIFS[accent]
    words = prompt.split()
    title = " ".join(words[:6])
    content_width = max(len(prompt), len(title), 24)
    width = min(MAX_WIDTH, max(MIN_WIDTH, content_width + 4))
    inner = width - 4

    def row(value: str) -> str:
        return f"┃ {value[:inner].ljust(inner)} ┃"

    divider = f"┣{motif * (width - 2)}┫"
    lines = [f"┏{motif * (width - 2)}┓", row("AGENT ➜ MCP VISUALIZER"), divider]
    lines.append(row(f"Focus: {title}"))
    lines.append(divider)

    wrapped = _wrap(words, inner)
    lines.extend(row(line) for line in wrapped)
    if not wrapped:
        lines.append(row(prompt))

    lines.append(f"┗{motif * (width - 2)}┛")
    return lines


async def draw(params: SketchInput, ctx: InvocationContext) -> ToolResult:
    frame = render_sketch(params.prompt.strip(), params.accent)
    return text_result("\n".join(frame), structured=SketchOutput(lines=frame).model_dump())


def create_sketch_server(config: ToolserveConfig) -> ServerDescriptor:
    return ServerDescriptor.build(
        ServerKind.SKETCH,
        ServerInfo(
            name="toolserve-sketchpad",
            instructions=(
                "Turns textual prompts into high-contrast ASCII layout sketches "
                "that illustrate structural ideas quickly."
            ),
        ),
        [
            ToolDefinition(
                name="sketchpad_draw",
                title="ASCII Sketchpad",
                description="Render a fast visual mock using unicode box drawing glyphs.",
                input_model=SketchInput,
                output_model=SketchOutput,
                handler=draw,
            )
        ],
    )
