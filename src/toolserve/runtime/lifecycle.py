"""Lifecycle controller: connects the transport and owns shutdown.

States::

    CREATED -> CONNECTING -> READY -> SHUTTING_DOWN -> CLOSED

Three routes lead to shutdown: a termination signal, the transport
closing, and the transport failing. They all call
:meth:`LifecycleController.request_shutdown`, which runs the close
sequence at most once. The close sequence waits a bounded grace period
for the transport to unwind and then closes without it. The controller
returns the exit code instead of exiting, so the whole path is testable
in-process; :func:`toolserve.runtime.runner.start_builtin_server` does
the actual process exit.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import signal
from typing import TYPE_CHECKING

from toolserve.core.errors import LifecycleError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from mcp.server import Server

    from toolserve.runtime.transport import Transport
    from toolserve.servers.base import ServerDescriptor

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TRANSPORT_ERROR = 1

# How long shutdown waits for a cancelled transport to unwind. The stdio
# reader blocks in a worker thread that cancellation cannot interrupt.
DEFAULT_CLOSE_GRACE = 2.0

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(enum.Enum):
    """States of a builtin server process."""

    CREATED = "created"
    CONNECTING = "connecting"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


_VALID_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.CREATED: frozenset({LifecycleState.CONNECTING, LifecycleState.SHUTTING_DOWN}),
    LifecycleState.CONNECTING: frozenset({LifecycleState.READY, LifecycleState.SHUTTING_DOWN}),
    LifecycleState.READY: frozenset({LifecycleState.SHUTTING_DOWN}),
    LifecycleState.SHUTTING_DOWN: frozenset({LifecycleState.CLOSED}),
    LifecycleState.CLOSED: frozenset(),
}


class LifecycleController:
    """Runs one server over one transport until shutdown."""

    def __init__(
        self,
        descriptor: ServerDescriptor,
        transport: Transport,
        *,
        server_factory: Callable[[ServerDescriptor], Server] | None = None,
        signals: Sequence[signal.Signals] = DEFAULT_SIGNALS,
        install_signal_handlers: bool = True,
        close_grace: float = DEFAULT_CLOSE_GRACE,
    ) -> None:
        if server_factory is None:
            from toolserve.mcp.server import create_mcp_server

            server_factory = create_mcp_server
        self._descriptor = descriptor
        self._transport = transport
        self._server_factory = server_factory
        self._signals = tuple(signals)
        self._install_signal_handlers = install_signal_handlers
        self._close_grace = close_grace

        self._state = LifecycleState.CREATED
        self._shutdown_requested = False
        self._exit_code = EXIT_OK
        self._shutdown_reason: str | None = None
        self._ready = asyncio.Event()
        self._closed = asyncio.Event()
        self._serve_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._close_hooks: list[Callable[[], Awaitable[None]]] = []
        self._installed: list[signal.Signals] = []
        self.close_count = 0

    # ── Introspection ─────────────────────────────────────────

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def shutdown_reason(self) -> str | None:
        return self._shutdown_reason

    async def wait_ready(self) -> None:
        await self._ready.wait()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def add_close_hook(self, hook: Callable[[], Awaitable[None]]) -> None:
        """Run *hook* during shutdown. Its errors are logged and ignored."""
        self._close_hooks.append(hook)

    # ── Main loop ─────────────────────────────────────────────

    async def run(self) -> int:
        """Connect, serve until shutdown, and return the exit code."""
        if self._shutdown_requested:
            await self._closed.wait()
            return self._exit_code
        self._transition(LifecycleState.CONNECTING)
        self._descriptor.registry.freeze()
        server = self._server_factory(self._descriptor)

        loop = asyncio.get_running_loop()
        if self._install_signal_handlers:
            self._add_signal_handlers(loop)
        try:
            self._serve_task = loop.create_task(self._serve(server))
            if not self._shutdown_requested:
                self._transition(LifecycleState.READY)
                self._ready.set()
                logger.info("builtin mcp server ready: %s", self._descriptor.info.name)
            await self._closed.wait()
        finally:
            self._remove_signal_handlers(loop)
        return self._exit_code

    async def _serve(self, server: Server) -> None:
        try:
            await self._transport.serve(server)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("builtin mcp transport error: %s", exc)
            self.request_shutdown("transport error", exit_code=EXIT_TRANSPORT_ERROR)
        else:
            self.request_shutdown("transport closed")

    # ── Shutdown ──────────────────────────────────────────────

    def request_shutdown(self, reason: str, exit_code: int = EXIT_OK) -> bool:
        """Start the close sequence unless it already started.

        The guard is checked and set with no suspension point in between,
        so only the first caller proceeds. Returns True for that caller.
        """
        if self._shutdown_requested:
            logger.debug("Shutdown already in progress; ignoring %s", reason)
            return False
        self._shutdown_requested = True
        self._shutdown_reason = reason
        self._exit_code = exit_code
        self._transition(LifecycleState.SHUTTING_DOWN)
        logger.info("Shutting down builtin mcp server (%s)", reason)
        self._close_task = asyncio.get_running_loop().create_task(self._close())
        return True

    async def _close(self) -> None:
        self.close_count += 1
        current = asyncio.current_task()
        task = self._serve_task
        if task is not None and task is not current and not task.done():
            task.cancel()
            _, pending = await asyncio.wait({task}, timeout=self._close_grace)
            if pending:
                logger.warning(
                    "Transport did not stop within %gs; closing without it",
                    self._close_grace,
                )
        for hook in self._close_hooks:
            try:
                await hook()
            except Exception as exc:
                logger.debug("Close hook failed: %s", exc)
        self._transition(LifecycleState.CLOSED)
        self._closed.set()

    # ── Internals ─────────────────────────────────────────────

    def _transition(self, to: LifecycleState) -> None:
        if to not in _VALID_TRANSITIONS[self._state]:
            msg = f"Invalid transition: {self._state.value} -> {to.value}"
            raise LifecycleError(msg)
        self._state = to

    def _on_signal(self, sig: signal.Signals) -> None:
        self.request_shutdown(f"signal {sig.name}")

    def _add_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError) as exc:
                logger.debug("Cannot install handler for %s: %s", sig.name, exc)
                continue
            self._installed.append(sig)

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()
