"""
Retrieval tools exposed to the reasoning engine.

The tool set is closed: `searchWeb` and `scrapePages`, modelled as a
discriminated union. Engine-requested arguments are validated against the
matching input model before anything is dispatched; invalid requests become
error results the engine can read and correct.
"""

import asyncio
import json
from typing import Annotated, Any, Literal, Protocol, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from api.base_client import ToolSpec
from orchestrator.agent_types import ToolCallRequest, ToolExecution
from tools.web.contracts import CrawlBatchResult, ScrapePagesResult, SearchResult
from utils.logger import get_logger
from utils.telemetry import Telemetry

logger = get_logger(__name__)

SEARCH_WEB = "searchWeb"
SCRAPE_PAGES = "scrapePages"


class SearchWebInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(
        ...,
        min_length=1,
        description=(
            "The query to search the web for. The results include URLs that you MUST cite "
            "in your final response using markdown links."
        ),
    )


class ScrapePagesInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(
        ...,
        min_length=1,
        description="A list of absolute URLs to fetch and convert to readable text",
    )

    @field_validator("urls")
    @classmethod
    def urls_must_be_absolute(cls, urls: list[str]) -> list[str]:
        for url in urls:
            parts = urlsplit(url)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ValueError(f"not an absolute http(s) URL: {url!r}")
        return urls


class SearchWebCall(BaseModel):
    name: Literal["searchWeb"]
    arguments: SearchWebInput


class ScrapePagesCall(BaseModel):
    name: Literal["scrapePages"]
    arguments: ScrapePagesInput


ToolInvocation = Annotated[Union[SearchWebCall, ScrapePagesCall], Field(discriminator="name")]
_invocation_adapter: TypeAdapter = TypeAdapter(ToolInvocation)


def parse_tool_call(request: ToolCallRequest) -> SearchWebCall | ScrapePagesCall:
    """
    Validate an engine tool request against the tool union.

    Raises:
        ValueError: If the arguments are not a JSON object
        ValidationError: If the tool is unknown or the arguments do not match its schema
    """
    try:
        arguments = json.loads(request.arguments) if request.arguments else {}
    except json.JSONDecodeError as e:
        raise ValueError(f"arguments are not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise ValueError("arguments must be a JSON object")
    return _invocation_adapter.validate_python({"name": request.name, "arguments": arguments})


class SearchProvider(Protocol):
    async def search_results(self, query: str, num: int = 10) -> list[SearchResult]: ...


class BatchCrawler(Protocol):
    async def crawl_many(self, urls: list[str]) -> CrawlBatchResult: ...


def _schema(model: type[BaseModel]) -> dict[str, Any]:
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


class RetrievalTools:
    """searchWeb and scrapePages, plus validated dispatch of engine tool calls."""

    def __init__(
        self,
        search_client: SearchProvider,
        crawler: BatchCrawler,
        search_results_count: int = 10,
        telemetry: Telemetry | None = None,
    ):
        self.search_client = search_client
        self.crawler = crawler
        self.search_results_count = search_results_count
        self.telemetry = telemetry or Telemetry()

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name=SEARCH_WEB,
                description="Search the web. Returns ranked results with title, link, snippet and publication date when known.",
                parameters=_schema(SearchWebInput),
            ),
            ToolSpec(
                name=SCRAPE_PAGES,
                description=(
                    "Fetch several web pages or PDFs concurrently and return their readable text. "
                    "Each URL reports success or an error (for example a robots.txt block) on its own."
                ),
                parameters=_schema(ScrapePagesInput),
            ),
        ]

    async def aclose(self) -> None:
        for resource in (self.search_client, self.crawler):
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()

    async def search_web(self, query: str, result_count: int | None = None) -> list[SearchResult]:
        return await self.search_client.search_results(query, result_count or self.search_results_count)

    async def scrape_pages(self, urls: list[str]) -> ScrapePagesResult:
        """
        Crawl URLs and attach the `sources` projection.

        Raises:
            ValidationError: If `urls` is empty or holds a non-absolute URL; nothing is fetched then
        """
        request = ScrapePagesInput(urls=urls)

        try:
            batch = await self.crawler.crawl_many(request.urls)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            message = str(e) or "Failed to scrape pages"
            logger.error(
                f"Scrape batch failed: {message}",
                extra={"extra_fields": {"url_count": len(request.urls), "error_type": type(e).__name__}},
            )
            return ScrapePagesResult.all_failed(request.urls, message)

        return ScrapePagesResult.from_batch(batch)

    async def execute(self, request: ToolCallRequest) -> ToolExecution:
        """
        Validate and run one engine tool call.

        Tool failures come back as ok=False executions, never as exceptions;
        only cancellation propagates.
        """
        try:
            invocation = parse_tool_call(request)
        except (ValidationError, ValueError) as e:
            logger.warning(
                f"Rejected tool call {request.name}",
                extra={"extra_fields": {"tool": request.name, "error": str(e)}},
            )
            return ToolExecution(
                call_id=request.id,
                name=request.name,
                ok=False,
                output={"error": f"Invalid call to tool '{request.name}': {e}"},
            )

        arguments = invocation.arguments.model_dump()
        try:
            with self.telemetry.span(f"tool.{invocation.name}", **arguments) as span:
                if isinstance(invocation, SearchWebCall):
                    results = await self.search_web(invocation.arguments.query)
                    span["result_count"] = len(results)
                    output: dict[str, Any] = {"results": [result.to_dict() for result in results]}
                else:
                    scraped = await self.scrape_pages(invocation.arguments.urls)
                    span["batch_success"] = scraped.success
                    output = scraped.to_dict()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Tool {invocation.name} failed: {e}",
                extra={"extra_fields": {"tool": invocation.name, "error_type": type(e).__name__}},
            )
            return ToolExecution(
                call_id=request.id,
                name=invocation.name,
                ok=False,
                output={"error": str(e) or type(e).__name__},
                arguments=arguments,
            )

        return ToolExecution(
            call_id=request.id,
            name=invocation.name,
            ok=True,
            output=output,
            arguments=arguments,
        )
