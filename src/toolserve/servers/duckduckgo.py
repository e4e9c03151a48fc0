"""DuckDuckGo server: Instant Answer lookups."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field

from toolserve.core.cancel import run_with_deadline
from toolserve.core.errors import CallAbortedError, InvalidPayloadError, UpstreamError
from toolserve.servers.base import ServerDescriptor, ServerInfo, ServerKind
from toolserve.tools.base import ToolDefinition
from toolserve.tools.orchestrator import ensure_success, read_json
from toolserve.tools.results import error_result, failure_result, text_result

if TYPE_CHECKING:
    from toolserve.config.schema import DuckDuckGoConfig, ToolserveConfig
    from toolserve.tools.base import InvocationContext, ToolResult

logger = logging.getLogger(__name__)

_TAGS = re.compile(r"<[^>]+>")


class DuckInput(BaseModel):
    query: str = Field(min_length=2, description="Provide a search query.")
    region: str | None = Field(default=None, description="Region code, e.g. us-en")


class DuckResult(BaseModel):
    title: str
    url: str
    snippet: str | None = None


class DuckOutput(BaseModel):
    summary: str
    results: list[DuckResult]


def strip_tags(value: str) -> str:
    return _TAGS.sub("", value).strip()


def _text(record: dict[str, Any], key: str) -> str | None:
    value = record.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _to_result(item: Any) -> DuckResult | None:
    if not isinstance(item, dict):
        return None
    title = _text(item, "Text")
    url = _text(item, "FirstURL")
    if not title or not url:
        return None
    raw = item.get("Result")
    snippet = strip_tags(raw) if isinstance(raw, str) and raw != title else None
    return DuckResult(title=title, url=url, snippet=snippet)


def collect_results(payload: dict[str, Any], cap: int = 6) -> list[DuckResult]:
    """Flatten an Instant Answer payload into at most *cap* results.

    The abstract, when present, comes first; related topics (including
    nested topic groups) follow in payload order.
    """
    results: list[DuckResult] = []
    topics = payload.get("RelatedTopics")
    for topic in topics if isinstance(topics, list) else []:
        if not isinstance(topic, dict):
            continue
        nested = topic.get("Topics")
        candidates = nested if isinstance(nested, list) else [topic]
        for candidate in candidates:
            result = _to_result(candidate)
            if result is not None:
                results.append(result)

    abstract_url = _text(payload, "AbstractURL")
    abstract_text = _text(payload, "AbstractText")
    if abstract_url and abstract_text:
        source = payload.get("AbstractSource")
        results.insert(
            0,
            DuckResult(
                title=abstract_text,
                url=abstract_url,
                snippet=source if isinstance(source, str) else None,
            ),
        )
    return results[:cap]


def format_results(results: list[DuckResult]) -> str:
    blocks = []
    for index, item in enumerate(results, 1):
        block = f"{index}. {item.title}\n   {item.url}"
        if item.snippet:
            block += f"\n   {item.snippet}"
        blocks.append(block)
    return "\n\n".join(blocks) or "No results found."


class DuckDuckGoSearch:
    """Handler for ``duckduckgo_search``."""

    def __init__(
        self,
        config: DuckDuckGoConfig,
        *,
        user_agent: str = "toolserve",
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._user_agent = user_agent
        self._http_transport = http_transport

    async def _fetch(self, params: DuckInput) -> httpx.Response:
        query: dict[str, str] = {
            "q": params.query,
            "format": "json",
            "no_redirect": "1",
            "no_html": "1",
        }
        if params.region:
            query["kl"] = params.region
        async with httpx.AsyncClient(
            transport=self._http_transport,
            timeout=httpx.Timeout(self._config.timeout),
        ) as client:
            return await client.get(
                self._config.endpoint,
                params=query,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
            )

    async def __call__(self, params: DuckInput, ctx: InvocationContext) -> ToolResult:
        try:
            response = await run_with_deadline(
                lambda: self._fetch(params),
                abort=ctx.abort,
                timeout=self._config.timeout,
            )
            ensure_success(response)
        except CallAbortedError as exc:
            return failure_result(exc)
        except (httpx.HTTPError, UpstreamError) as exc:
            logger.warning("duckduckgo request failed: %s", exc)
            return error_result("DuckDuckGo search failed. Check your network connectivity.")

        try:
            payload = read_json(response)
        except InvalidPayloadError as exc:
            logger.warning("duckduckgo json parse failed: %s", exc)
            return error_result("DuckDuckGo returned an invalid payload.")

        results = collect_results(payload, self._config.result_cap)
        heading = payload.get("Heading")
        summary = heading if isinstance(heading, str) and heading else f"Results for {params.query}"
        output = DuckOutput(summary=summary, results=results)
        return text_result(format_results(results), structured=output.model_dump())


def create_duckduckgo_server(
    config: ToolserveConfig,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> ServerDescriptor:
    search = DuckDuckGoSearch(
        config.tools.duckduckgo,
        user_agent=config.tools.user_agent,
        http_transport=http_transport,
    )
    return ServerDescriptor.build(
        ServerKind.DUCKDUCKGO,
        ServerInfo(
            name="toolserve-duckduckgo",
            instructions=(
                "Runs live DuckDuckGo Instant Answer searches and summarises the top findings."
            ),
        ),
        [
            ToolDefinition(
                name="duckduckgo_search",
                title="DuckDuckGo",
                description="Query DuckDuckGo's Instant Answer API for fast factual lookups.",
                input_model=DuckInput,
                output_model=DuckOutput,
                handler=search,
            )
        ],
    )
