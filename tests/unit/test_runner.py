"""Tests for starting builtin servers."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

import pytest

import toolserve
from toolserve.config.schema import ToolserveConfig
from toolserve.core.errors import ConfigError, TransportError, UnknownServerError
from toolserve.runtime import runner
from toolserve.runtime.runner import exit_process, serve_builtin, start_builtin_server


class ClosingTransport:
    """Closes as soon as it is served."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.server_names: list[str] = []

    async def serve(self, server) -> None:  # type: ignore[no-untyped-def]
        self.server_names.append(server.name)
        if self.error is not None:
            raise self.error


class TestServeBuiltin:
    async def test_closed_transport_exits_zero(self):
        transport = ClosingTransport()
        code = await serve_builtin("sketch", ToolserveConfig(), transport=transport)
        assert code == 0
        assert transport.server_names == ["toolserve-sketchpad"]

    async def test_transport_failure_exits_one(self):
        transport = ClosingTransport(TransportError("broken pipe"))
        assert await serve_builtin("sequential", ToolserveConfig(), transport=transport) == 1

    async def test_unknown_name(self):
        transport = ClosingTransport()
        with pytest.raises(UnknownServerError):
            await serve_builtin("nope", ToolserveConfig(), transport=transport)
        assert transport.server_names == []

    async def test_disabled_server_refused(self):
        config = ToolserveConfig.model_validate({"servers": {"duckduckgo": {"enabled": False}}})
        with pytest.raises(ConfigError, match="disabled"):
            await serve_builtin("duckduckgo", config, transport=ClosingTransport())

    async def test_other_server_disabled_is_fine(self):
        config = ToolserveConfig.model_validate({"servers": {"duckduckgo": {"enabled": False}}})
        assert await serve_builtin("sketch", config, transport=ClosingTransport()) == 0


class TestStartBuiltinServer:
    def test_sync_entry_point(self):
        assert start_builtin_server("websearch", ToolserveConfig(), transport=ClosingTransport()) == 0

    def test_exit_when_closed_hands_code_to_process_exit(self, monkeypatch):
        exits: list[int] = []
        monkeypatch.setattr(runner, "exit_process", exits.append)
        code = start_builtin_server(
            "sketch",
            ToolserveConfig(),
            transport=ClosingTransport(TransportError("broken pipe")),
            exit_when_closed=True,
        )
        assert exits == [1]
        assert code == 1

    def test_startup_errors_raise_before_exit(self, monkeypatch):
        exits: list[int] = []
        monkeypatch.setattr(runner, "exit_process", exits.append)
        with pytest.raises(UnknownServerError):
            start_builtin_server(
                "nope", ToolserveConfig(), transport=ClosingTransport(), exit_when_closed=True
            )
        assert exits == []


class FlushRecorder(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.flushed = False

    def emit(self, record: logging.LogRecord) -> None:
        pass

    def flush(self) -> None:
        self.flushed = True


class TestExitProcess:
    def test_flushes_logs_then_exits(self, monkeypatch):
        exits: list[int] = []
        monkeypatch.setattr(runner.os, "_exit", exits.append)
        handler = FlushRecorder()
        logging.getLogger("toolserve").addHandler(handler)
        exit_process(3)
        assert handler.flushed is True
        assert exits == [3]


# ── Real process ────────────────────────────────────────────────


async def _spawn(server: str) -> asyncio.subprocess.Process:
    src = str(Path(toolserve.__file__).resolve().parents[1])
    pythonpath = os.pathsep.join(p for p in (src, os.environ.get("PYTHONPATH")) if p)
    return await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "toolserve",
        server,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env={**os.environ, "PYTHONPATH": pythonpath},
    )


async def _wait_for_ready(proc: asyncio.subprocess.Process) -> None:
    assert proc.stderr is not None
    while True:
        line = await asyncio.wait_for(proc.stderr.readline(), timeout=10.0)
        assert line, "server exited before becoming ready"
        if b"builtin mcp server ready" in line:
            return


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
class TestStdioProcess:
    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
    async def test_signal_exits_zero_with_stdin_open(self, sig):
        proc = await _spawn("sequential")
        try:
            await _wait_for_ready(proc)
            await asyncio.sleep(0.3)
            proc.send_signal(sig)
            code = await asyncio.wait_for(proc.wait(), timeout=8.0)
            assert code == 0
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

    async def test_stdin_closed_exits_zero(self):
        proc = await _spawn("sketch")
        try:
            await _wait_for_ready(proc)
            assert proc.stdin is not None
            proc.stdin.close()
            code = await asyncio.wait_for(proc.wait(), timeout=8.0)
            assert code == 0
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
