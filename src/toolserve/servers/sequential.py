"""Sequential thinking server: structured step-by-step execution plans."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.tools.base import ToolDefinition
from toolserve.tools.results import text_result

if TYPE_CHECKING:
    from toolserve.config.schema import ToolserveConfig
    from toolserve.tools.base import InvocationContext, ToolResult

# Objectives longer than this get an extra scoping step.
LONG_OBJECTIVE = 140


class SequentialInput(BaseModel):
    objective: str = Field(min_length=3, description="Describe the objective.")
    context: str | None = Field(default=None, description="Optional background or constraints.")


class PlanStep(BaseModel):
    title: str
    detail: str


class SequentialOutput(BaseModel):
    summary: str
    steps: list[PlanStep] = Field(min_length=1)


def build_plan(objective: str, context: str | None = None) -> list[PlanStep]:
    """Return the plan steps for *objective*."""
    if context:
        criteria = f"Incorporate context: {context}."
    else:
        criteria = "Capture relevant constraints."
    steps = [
        PlanStep(
            title="Clarify success criteria",
            detail=f"Translate the objective into explicit acceptance checks. {criteria}",
        ),
        PlanStep(
            title="Map constraints and unknowns",
            detail=(
                "List external dependencies, risks, and information gaps. "
                "Resolve blockers before implementation."
            ),
        ),
        PlanStep(
            title="Execute incrementally",
            detail=(
                "Sequence concrete work items so that each step yields a "
                "verifiable artifact. Validate after every step."
            ),
        ),
        PlanStep(
            title="Review and harden",
            detail=(
                "Cross-check results against success criteria, add tests, and "
                "document decisions for downstream maintainers."
            ),
        ),
    ]
    if len(objective) > LONG_OBJECTIVE:
        steps.insert(
            2,
            PlanStep(
                title="Partition the scope",
                detail=(
                    "Break the work into cohesive sub-problems so each can be "
                    "solved independently before integration."
                ),
            ),
        )
    return steps


def summarize_plan(objective: str, step_count: int) -> str:
    return f"{step_count}-step execution plan for: {objective}"


def render_plan(steps: list[PlanStep]) -> str:
    return "\n\n".join(
        f"{index:02d}. {step.title}\n    {step.detail}" for index, step in enumerate(steps, 1)
    )


async def plan(params: SequentialInput, ctx: InvocationContext) -> ToolResult:
    objective = params.objective.strip()
    context = params.context.strip() if params.context else None
    steps = build_plan(objective, context or None)
    output = SequentialOutput(summary=summarize_plan(objective, len(steps)), steps=steps)
    return text_result(render_plan(steps), structured=output.model_dump())


def create_sequential_server(config: ToolserveConfig) -> ServerDescriptor:
    return ServerDescriptor.build(
        ServerKind.SEQUENTIAL,
        ServerInfo(
            name="toolserve-sequential-thinking",
            instructions=(
                "Generates structured step-by-step execution plans. "
                "Accepts an objective and optional context."
            ),
        ),
        [
            ToolDefinition(
                name="sequential_thinking_plan",
                title="Sequential Thinking",
                description=(
                    "Produce a disciplined, auditable execution plan that can be "
                    "followed without guesswork."
                ),
                input_model=SequentialInput,
                output_model=SequentialOutput,
                handler=plan,
            )
        ],
    )
