"""Cooperative cancellation for outbound calls.

An :class:`AbortSignal` is created once per tool invocation and passed by
reference into every outbound call the invocation makes, including fan-out
children. :func:`run_with_deadline` races a call against that signal and an
internally owned timeout; whichever fires first cancels the call.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from toolserve.core.errors import CallCancelledError, CallTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


class AbortSignal:
    """One-shot cancellation token.

    Triggering is idempotent: the first reason wins.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def abort(self, reason: str = "aborted") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the signal fires."""
        await self._event.wait()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise CallCancelledError(self._reason)


async def _discard(task: asyncio.Future[object]) -> None:
    """Cancel *task* and wait for it to unwind, ignoring its outcome."""
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


async def run_with_deadline(
    fn: Callable[[], Awaitable[T]],
    *,
    abort: AbortSignal | None = None,
    timeout: float | None = None,
) -> T:
    """Run ``fn()`` until it completes, *abort* fires, or *timeout* elapses.

    Args:
        fn: Zero-arg callable returning an awaitable (the outbound call).
        abort: The invocation's cancellation token. May be None.
        timeout: Internal budget in seconds. None means no budget.

    Returns:
        The result of ``fn()``.

    Raises:
        CallCancelledError: If *abort* fired first.
        CallTimeoutError: If the budget elapsed first.
        Exception: Whatever ``fn()`` raised, unchanged.
    """
    if abort is not None:
        abort.raise_if_aborted()

    task: asyncio.Future[T] = asyncio.ensure_future(fn())
    waiters: set[asyncio.Future[object]] = {task}  # type: ignore[arg-type]
    abort_waiter: asyncio.Future[None] | None = None
    if abort is not None:
        abort_waiter = asyncio.ensure_future(abort.wait())
        waiters.add(abort_waiter)  # type: ignore[arg-type]

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _discard(task)  # type: ignore[arg-type]
        raise
    finally:
        if abort_waiter is not None:
            abort_waiter.cancel()

    if task in done:
        return task.result()

    # The outbound call lost the race: never leave it running.
    await _discard(task)  # type: ignore[arg-type]
    if abort is not None and abort.aborted:
        raise CallCancelledError(abort.reason)
    raise CallTimeoutError(timeout or 0.0)
