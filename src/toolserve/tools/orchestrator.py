"""Call orchestrator: bounded, cancellable, partially fault-tolerant work.

The pattern for a tool that talks to the outside world:

1. Build the query (:func:`build_query`).
2. Run the primary call under the caller's abort signal and an internal
   timeout (:func:`run_with_deadline`). A non-success status, an unusable
   body, or an empty result set fails the whole invocation.
3. Optionally fan out up to N secondary calls concurrently
   (:func:`fan_out`). Each child shares the caller's abort signal, has its
   own timeout, and may fail on its own; the join waits for all of them.
4. Hand the primary payload and the settled children to the result
   assembler.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from toolserve.core.cancel import AbortSignal, run_with_deadline
from toolserve.core.errors import (
    InvalidPayloadError,
    PayloadTooLargeError,
    ToolValidationError,
    UpstreamError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    import httpx

    from toolserve.config.schema import WebSearchConfig

T = TypeVar("T")
R = TypeVar("R")

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)

__all__ = [
    "AbortSignal",
    "ExternalCallSpec",
    "Settled",
    "build_query",
    "check_payload",
    "ensure_success",
    "fan_out",
    "read_json",
    "run_with_deadline",
    "succeeded",
]


@dataclass(frozen=True, slots=True)
class ExternalCallSpec:
    """Per-orchestration budgets. Built per call from config."""

    timeout: float = 20.0
    sub_call_timeout: float = 20.0
    max_sub_calls: int = 5
    max_payload_bytes: int = 2 * 1024 * 1024

    @classmethod
    def from_config(cls, config: WebSearchConfig) -> ExternalCallSpec:
        return cls(
            timeout=config.timeout,
            sub_call_timeout=config.timeout,
            max_sub_calls=config.max_image_count,
            max_payload_bytes=config.max_image_bytes,
        )


@dataclass(frozen=True, slots=True)
class Settled(Generic[T]):
    """Outcome of one fan-out child: a value or an error, never both."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ── Query construction ──────────────────────────────────────────


def _clean_domains(domains: Iterable[str] | None) -> list[str]:
    cleaned: list[str] = []
    for domain in domains or ():
        value = _SCHEME.sub("", domain.strip())
        if value:
            cleaned.append(value)
    return cleaned


def build_query(
    query: str,
    include_domains: Iterable[str] | None = None,
    exclude_domains: Iterable[str] | None = None,
) -> str:
    """Combine a base query with site filters.

    Inclusion is one parenthesised OR-group; each exclusion is appended
    separately, in the order given.

    >>> build_query("rust ownership", ["doc.rust-lang.org"], ["reddit.com"])
    'rust ownership (site:doc.rust-lang.org) -site:reddit.com'

    Raises:
        ToolValidationError: If the base query is blank.
    """
    base = query.strip()
    if not base:
        msg = "Search query cannot be empty"
        raise ToolValidationError(msg)

    include = _clean_domains(include_domains)
    if include:
        base += " (" + " OR ".join(f"site:{d}" for d in include) + ")"

    for domain in _clean_domains(exclude_domains):
        base += f" -site:{domain}"
    return base


# ── Primary call gating ─────────────────────────────────────────


def ensure_success(response: httpx.Response) -> httpx.Response:
    """Raise :class:`UpstreamError` for non-2xx responses."""
    if response.is_success:
        return response
    raise UpstreamError(response.status_code, response.text[:500])


def read_json(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body.

    Raises:
        InvalidPayloadError: If the body is not a JSON object.
    """
    try:
        data = response.json()
    except ValueError as e:
        raise InvalidPayloadError(f"body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError(f"expected a JSON object, got {type(data).__name__}")
    return data


def check_payload(data: bytes, max_bytes: int) -> bytes:
    """Return *data* unchanged, or raise if it exceeds *max_bytes*."""
    if len(data) > max_bytes:
        raise PayloadTooLargeError(len(data), max_bytes)
    return data


# ── Fan-out ─────────────────────────────────────────────────────


async def fan_out(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    abort: AbortSignal | None = None,
    timeout: float | None = None,
    limit: int | None = None,
) -> list[Settled[R]]:
    """Run ``fn(item)`` for up to *limit* items concurrently, all-settled.

    Every child runs under the shared *abort* signal and its own *timeout*.
    A failing child yields ``Settled(error=...)``; it never cancels its
    siblings. Returns outcomes in input order once every child finished.
    A *limit* of zero or None skips the fan-out entirely.
    """
    if not limit or limit <= 0:
        return []
    selected = list(items)[:limit]
    if not selected:
        return []

    async def _child(item: T) -> R:
        return await run_with_deadline(lambda: fn(item), abort=abort, timeout=timeout)

    raw_results = await asyncio.gather(
        *(_child(item) for item in selected), return_exceptions=True
    )

    settled: list[Settled[R]] = []
    for result in raw_results:
        if isinstance(result, BaseException):
            settled.append(Settled(error=result))
        else:
            settled.append(Settled(value=result))
    return settled


def succeeded(outcomes: Sequence[Settled[T]]) -> list[T]:
    """Values of the children that finished successfully."""
    return [o.value for o in outcomes if o.ok]  # type: ignore[misc]
