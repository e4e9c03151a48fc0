"""Web search tool: searches the web via Serper.

Runs the primary search under the caller's abort signal and a 20s budget,
then optionally downloads up to five images concurrently. Image failures
only shrink the attachment list.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from toolserve.config.schema import WebSearchConfig
from toolserve.core import ids
from toolserve.core.cancel import run_with_deadline
from toolserve.core.errors import (
    AccessDeniedError,
    CallCancelledError,
    EmptyResultError,
)
from toolserve.tools.base import FilePart, ToolDefinition
from toolserve.tools.orchestrator import (
    ExternalCallSpec,
    Settled,
    build_query,
    check_payload,
    ensure_success,
    fan_out,
    read_json,
    succeeded,
)
from toolserve.tools.permissions import PermissionRequest, require_permission
from toolserve.tools.results import partial_result

if TYPE_CHECKING:
    from toolserve.config.schema import PermissionPolicy
    from toolserve.tools.base import InvocationContext, ToolResult
    from toolserve.tools.permissions import PermissionAsker

logger = logging.getLogger(__name__)

MAX_RESULT_LIMIT = 10
MAX_IMAGE_COUNT = 5

DESCRIPTION = (
    "Search the web for current information. Returns ranked results with "
    "titles, URLs and snippets. Use includeDomains/excludeDomains to scope "
    "the search and imageCount to attach web images."
)

_MIME_BY_SUFFIX: tuple[tuple[tuple[str, ...], str], ...] = (
    ((".png",), "image/png"),
    ((".jpg", ".jpeg"), "image/jpeg"),
    ((".gif",), "image/gif"),
    ((".webp",), "image/webp"),
    ((".svg",), "image/svg+xml"),
)

DomainName = Annotated[str, Field(min_length=1)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WebSearchInput(_CamelModel):
    query: str = Field(min_length=1, description="The search query to run")
    limit: int | None = Field(
        default=None,
        ge=1,
        le=MAX_RESULT_LIMIT,
        description="Maximum number of results to return (default 5, max 10)",
    )
    include_domains: list[DomainName] | None = Field(
        default=None, min_length=1, description="Only return results from these domains"
    )
    exclude_domains: list[DomainName] | None = Field(
        default=None, min_length=1, description="Exclude results from these domains"
    )
    image_count: int | None = Field(
        default=None,
        ge=1,
        le=MAX_IMAGE_COUNT,
        description="If provided, download this many web images (max 5)",
    )


class SearchHit(_CamelModel):
    title: str
    url: str


class WebSearchOutput(_CamelModel):
    query: str
    final_query: str
    limit: int
    include_domains: list[str]
    exclude_domains: list[str]
    provider: str
    results: list[SearchHit]
    images: list[SearchHit]


@dataclass(frozen=True, slots=True)
class _Image:
    hit: SearchHit
    mime: str
    data: str


def is_operator_model(model_id: str | None) -> bool:
    """Whether *model_id* names a model allowed to search the web."""
    if not model_id:
        return False
    value = model_id.lower()
    return "operator" in value or "deepseek-reasoner" in value


def guess_mime(url: str) -> str:
    lower = url.lower()
    for suffixes, mime in _MIME_BY_SUFFIX:
        if lower.endswith(suffixes):
            return mime
    return "application/octet-stream"


def format_results(organic: list[dict[str, Any]]) -> str:
    """Format organic results into a numbered listing."""
    blocks: list[str] = []
    for i, item in enumerate(organic, 1):
        lines = [f"{i}. {item.get('title') or 'Untitled result'}"]
        if item.get("link"):
            lines.append(f"URL: {item['link']}")
        if item.get("date"):
            lines.append(f"Date: {item['date']}")
        if item.get("snippet"):
            lines.append(item["snippet"])
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class WebSearchTool:
    """Serper-backed web search with optional image attachments."""

    name = "websearch"

    def __init__(
        self,
        config: WebSearchConfig | None = None,
        *,
        permission: PermissionPolicy = "allow",
        asker: PermissionAsker | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or WebSearchConfig()
        self._permission = permission
        self._asker = asker
        self._http_transport = http_transport

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            title="Web Search",
            description=DESCRIPTION,
            input_model=WebSearchInput,
            output_model=WebSearchOutput,
            handler=self.execute,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._http_transport,
            timeout=httpx.Timeout(self._config.timeout),
            follow_redirects=True,
        )

    async def execute(self, params: WebSearchInput, ctx: InvocationContext) -> ToolResult:
        """Run the search and assemble the result.

        Raises:
            AccessDeniedError: If the calling model may not search.
            PermissionDeniedError: If permission was refused.
            CallAbortedError: On caller cancellation or timeout.
            UpstreamError: On a failed or empty primary search.
        """
        cfg = self._config
        model_id = ctx.extra.get("model_id")
        if cfg.require_operator_model and not is_operator_model(
            model_id if isinstance(model_id, str) else None
        ):
            msg = "The websearch tool is only available for Operator models"
            raise AccessDeniedError(msg)

        await require_permission(
            self._permission,
            self._asker,
            PermissionRequest(
                type="websearch",
                session_id=ctx.session_id,
                message_id=ctx.message_id,
                call_id=ctx.call_id,
                title=f'Search the web for "{params.query}"',
                metadata=params.model_dump(by_alias=True),
            ),
        )

        limit = min(params.limit or cfg.default_results, cfg.max_results)
        final_query = build_query(params.query, params.include_domains, params.exclude_domains)
        spec = ExternalCallSpec.from_config(cfg)

        async with self._client() as client:
            organic = await run_with_deadline(
                lambda: self._search(client, final_query, limit),
                abort=ctx.abort,
                timeout=spec.timeout,
            )
            images = await self._fetch_images(
                client, final_query, params.query, params.image_count, ctx, spec
            )

        ctx.abort.raise_if_aborted()

        kept = succeeded(images)
        metadata = WebSearchOutput(
            query=params.query,
            final_query=final_query,
            limit=len(organic),
            include_domains=params.include_domains or [],
            exclude_domains=params.exclude_domains or [],
            provider="serper",
            results=[
                SearchHit(title=item.get("title") or "", url=item.get("link") or "")
                for item in organic
            ],
            images=[image.hit for image in kept],
        )

        parts: list[Settled[FilePart]] = []
        for outcome in images:
            if outcome.ok:
                image = outcome.value
                assert image is not None
                parts.append(
                    Settled(
                        value=FilePart(
                            id=ids.ascending("part"),
                            session_id=ctx.session_id,
                            message_id=ctx.message_id,
                            mime=image.mime,
                            payload=f"data:{image.mime};base64,{image.data}",
                        )
                    )
                )
            else:
                parts.append(Settled(error=outcome.error))

        return partial_result(
            format_results(organic),
            structured=metadata.model_dump(by_alias=True),
            attachments=parts,
            label="image",
        )

    # ── Upstream calls ───────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self._config.resolved_api_key(),
        }

    async def _search(
        self, client: httpx.AsyncClient, query: str, limit: int
    ) -> list[dict[str, Any]]:
        """Primary search. Empty results fail the invocation."""
        response = await client.post(
            self._config.endpoint,
            headers=self._headers(),
            json={
                "q": query,
                "gl": self._config.country,
                "hl": self._config.language,
                "num": min(limit, MAX_RESULT_LIMIT),
                "autocorrect": True,
            },
        )
        data = read_json(ensure_success(response))
        organic = data.get("organic")
        items = [o for o in organic if isinstance(o, dict)] if isinstance(organic, list) else []
        if not items:
            msg = "No search results were returned for this query"
            raise EmptyResultError(msg)
        return items[:limit]

    async def _fetch_images(
        self,
        client: httpx.AsyncClient,
        query: str,
        original_query: str,
        count: int | None,
        ctx: InvocationContext,
        spec: ExternalCallSpec,
    ) -> list[Settled[_Image]]:
        """Image search followed by a bounded, all-settled download fan-out."""
        if not count or count <= 0:
            return []
        count = min(count, spec.max_sub_calls)

        try:
            found = await run_with_deadline(
                lambda: self._image_search(client, query, count),
                abort=ctx.abort,
                timeout=spec.timeout,
            )
        except CallCancelledError:
            raise
        except Exception as exc:
            logger.warning("Image search failed for %r: %s", query, exc)
            return []

        candidates = [item for item in found if item.get("imageUrl")]

        async def _download(item: dict[str, Any]) -> _Image:
            url = item["imageUrl"]
            mime, data = await self._download(client, url, spec.max_payload_bytes)
            return _Image(
                hit=SearchHit(title=item.get("title") or original_query, url=url),
                mime=mime,
                data=data,
            )

        return await fan_out(
            candidates,
            _download,
            abort=ctx.abort,
            timeout=spec.sub_call_timeout,
            limit=count,
        )

    async def _image_search(
        self, client: httpx.AsyncClient, query: str, count: int
    ) -> list[dict[str, Any]]:
        response = await client.post(
            self._config.image_endpoint,
            headers=self._headers(),
            json={
                "q": query,
                "gl": self._config.country,
                "hl": self._config.language,
                "num": min(count, MAX_IMAGE_COUNT),
            },
        )
        data = read_json(ensure_success(response))
        images = data.get("images")
        if not isinstance(images, list):
            return []
        return [i for i in images if isinstance(i, dict)][:count]

    async def _download(
        self, client: httpx.AsyncClient, url: str, max_bytes: int
    ) -> tuple[str, str]:
        """Fetch one image. Returns (mime, base64 data)."""
        response = ensure_success(await client.get(url))
        content_type = response.headers.get("content-type", "")
        mime = content_type.split(";", 1)[0].strip() or guess_mime(url)
        body = check_payload(response.content, max_bytes)
        return mime, base64.b64encode(body).decode("ascii")
