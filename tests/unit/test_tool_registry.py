"""Tests for the tool registry."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel, Field

from toolserve.core.errors import (
    DuplicateToolError,
    RegistryFrozenError,
    UpstreamError,
)
from toolserve.tools.base import ToolDefinition
from toolserve.tools.registry import ToolRegistry
from toolserve.tools.results import text_result

# ── Helpers ──────────────────────────────────────────────────────


class CountInput(BaseModel):
    n: int = Field(ge=0)


class CountOutput(BaseModel):
    total: int


def _definition(name="count", handler=None, output_model=None):  # type: ignore[no-untyped-def]
    async def default(params, ctx):  # type: ignore[no-untyped-def]
        return text_result(str(params.n), structured={"total": params.n})

    return ToolDefinition(
        name=name,
        description=f"The {name} tool",
        input_model=CountInput,
        handler=handler or default,
        output_model=output_model,
    )


# ── Registration ────────────────────────────────────────────────


class TestRegistration:
    def test_register_and_get(self):
        registry = ToolRegistry()
        registry.register(_definition())
        assert "count" in registry
        assert len(registry) == 1
        assert registry.get("count").mcp_tool.name == "count"

    def test_duplicate_rejected(self):
        registry = ToolRegistry()
        registry.register(_definition())
        with pytest.raises(DuplicateToolError, match="count"):
            registry.register(_definition())
        assert len(registry) == 1

    def test_frozen_rejects(self):
        registry = ToolRegistry()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(_definition())

    def test_get_missing(self):
        with pytest.raises(KeyError, match="nope"):
            ToolRegistry().get("nope")

    def test_listing_preserves_order(self):
        registry = ToolRegistry()
        for name in ("b", "a", "c"):
            registry.register(_definition(name=name))
        assert registry.list_names() == ["b", "a", "c"]
        assert [t.name for t in registry.list_tools()] == ["b", "a", "c"]
        assert [d.name for d in registry.list_definitions()] == ["b", "a", "c"]

    def test_schema_computed_once(self):
        registry = ToolRegistry()
        registry.register(_definition())
        assert registry.list_tools()[0] is registry.list_tools()[0]


# ── Dispatch ────────────────────────────────────────────────────


class TestCall:
    async def test_success(self, make_ctx):
        registry = ToolRegistry()
        registry.register(_definition(output_model=CountOutput))
        result = await registry.call("count", {"n": 3}, make_ctx())
        assert result.is_error is False
        assert result.text == "3"
        assert result.structured_content == {"total": 3}

    async def test_unknown_tool(self, make_ctx):
        result = await ToolRegistry().call("missing", {}, make_ctx())
        assert result.is_error
        assert result.text == "Tool not found: missing"

    async def test_validation_short_circuits(self, make_ctx):
        handler = AsyncMock()
        registry = ToolRegistry()
        registry.register(_definition(handler=handler))
        result = await registry.call("count", {"n": -1}, make_ctx())
        assert result.is_error
        assert result.text.startswith("Input validation error:")
        assert "n" in result.text
        handler.assert_not_awaited()

    async def test_handler_exception_becomes_error_result(self, make_ctx):
        async def broken(params, ctx):  # type: ignore[no-untyped-def]
            msg = "kaboom"
            raise RuntimeError(msg)

        registry = ToolRegistry()
        registry.register(_definition(handler=broken))
        result = await registry.call("count", {"n": 1}, make_ctx())
        assert result.is_error
        assert result.text == "Tool execution error: kaboom"
        assert result.structured_content is None

    async def test_tool_error_text(self, make_ctx):
        async def upstream(params, ctx):  # type: ignore[no-untyped-def]
            raise UpstreamError(503, "unavailable")

        registry = ToolRegistry()
        registry.register(_definition(handler=upstream))
        result = await registry.call("count", {"n": 1}, make_ctx())
        assert result.is_error
        assert "503" in result.text

    async def test_non_result_return(self, make_ctx):
        async def wrong(params, ctx):  # type: ignore[no-untyped-def]
            return "plain string"

        registry = ToolRegistry()
        registry.register(_definition(handler=wrong))
        result = await registry.call("count", {"n": 1}, make_ctx())
        assert result.is_error
        assert "str" in result.text

    async def test_output_validation(self, make_ctx):
        async def bad_output(params, ctx):  # type: ignore[no-untyped-def]
            return text_result("ok", structured={"wrong": 1})

        registry = ToolRegistry()
        registry.register(_definition(handler=bad_output, output_model=CountOutput))
        result = await registry.call("count", {"n": 1}, make_ctx())
        assert result.is_error
        assert result.text.startswith("Output validation error:")

    async def test_failure_does_not_affect_concurrent_calls(self, make_ctx):
        async def maybe_fail(params, ctx):  # type: ignore[no-untyped-def]
            await asyncio.sleep(0.01)
            if params.n == 0:
                msg = "zero"
                raise ValueError(msg)
            return text_result(str(params.n))

        registry = ToolRegistry()
        registry.register(_definition(handler=maybe_fail))
        results = await asyncio.gather(
            *(registry.call("count", {"n": n}, make_ctx()) for n in (0, 1, 2))
        )
        assert [r.is_error for r in results] == [True, False, False]

    async def test_cancellation_propagates(self, make_ctx):
        started = asyncio.Event()

        async def slow(params, ctx):  # type: ignore[no-untyped-def]
            started.set()
            await asyncio.sleep(10)

        registry = ToolRegistry()
        registry.register(_definition(handler=slow))
        task = asyncio.ensure_future(registry.call("count", {"n": 1}, make_ctx()))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
