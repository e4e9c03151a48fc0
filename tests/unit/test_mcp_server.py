"""Tests for the MCP binding."""

from __future__ import annotations

import asyncio

import mcp.types as types
import pytest
from pydantic import BaseModel

from toolserve.config.schema import ToolserveConfig
from toolserve.mcp.server import create_mcp_server, make_context
from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.servers.registry import build_server
from toolserve.tools.base import ToolDefinition
from toolserve.tools.results import text_result

# ── Helpers ──────────────────────────────────────────────────────


async def _call(server, name, arguments):  # type: ignore[no-untyped-def]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    response = await server.request_handlers[types.CallToolRequest](request)
    return response.root


async def _list(server):  # type: ignore[no-untyped-def]
    request = types.ListToolsRequest(method="tools/list")
    response = await server.request_handlers[types.ListToolsRequest](request)
    return response.root.tools


# ── Context ─────────────────────────────────────────────────────


class TestMakeContext:
    def test_defaults(self):
        ctx = make_context("ses_1", None, {})
        assert ctx.session_id == "ses_1"
        assert ctx.message_id.startswith("msg_")
        assert ctx.call_id.startswith("call_")
        assert dict(ctx.extra) == {}

    def test_meta_mapped(self):
        ctx = make_context(
            "ses_1",
            "7",
            {"modelID": "operator-1", "sessionID": "ses_x", "messageID": "msg_x", "trace": "t"},
        )
        assert ctx.session_id == "ses_x"
        assert ctx.message_id == "msg_x"
        assert ctx.call_id == "7"
        assert ctx.extra["model_id"] == "operator-1"
        assert ctx.extra["trace"] == "t"

    def test_fresh_per_call(self):
        a = make_context("s", None, {})
        b = make_context("s", None, {})
        assert a.abort is not b.abort
        assert a.call_id != b.call_id


# ── Server binding ──────────────────────────────────────────────


class TestCreateServer:
    def test_identity(self):
        descriptor = build_server(ServerKind.SKETCH, ToolserveConfig())
        server = create_mcp_server(descriptor)
        assert server.name == "toolserve-sketchpad"
        assert server.version == descriptor.info.version
        assert server.instructions == descriptor.info.instructions

    async def test_list_tools(self):
        server = create_mcp_server(build_server(ServerKind.SEQUENTIAL, ToolserveConfig()))
        tools = await _list(server)
        assert [t.name for t in tools] == ["sequential_thinking_plan"]
        assert tools[0].inputSchema["required"] == ["objective"]
        assert tools[0].outputSchema is not None

    async def test_call_success(self):
        server = create_mcp_server(build_server(ServerKind.SKETCH, ToolserveConfig()))
        result = await _call(server, "sketchpad_draw", {"prompt": "Checkout flow"})
        assert isinstance(result, types.CallToolResult)
        assert result.isError is False
        assert result.content[0].type == "text"
        assert result.structuredContent is not None

    async def test_call_validation_error(self):
        server = create_mcp_server(build_server(ServerKind.SKETCH, ToolserveConfig()))
        result = await _call(server, "sketchpad_draw", {"prompt": 5})
        assert result.isError is True
        assert result.content[0].text.startswith("Input validation error:")

    async def test_call_unknown_tool(self):
        server = create_mcp_server(build_server(ServerKind.SKETCH, ToolserveConfig()))
        result = await _call(server, "nope", {})
        assert result.isError is True
        assert result.content[0].text == "Tool not found: nope"

    async def test_cancellation_aborts_context(self):
        seen = {}
        started = asyncio.Event()

        class Empty(BaseModel):
            pass

        async def slow(params, ctx):  # type: ignore[no-untyped-def]
            seen["ctx"] = ctx
            started.set()
            await asyncio.sleep(10)
            return text_result("late")

        descriptor = ServerDescriptor.build(
            ServerKind.SKETCH,
            ServerInfo("slow-server", "test"),
            [ToolDefinition(name="slow", description="d", input_model=Empty, handler=slow)],
        )
        server = create_mcp_server(descriptor)
        task = asyncio.ensure_future(_call(server, "slow", {}))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert seen["ctx"].abort.aborted
