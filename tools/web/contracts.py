"""Data contracts for web search and page retrieval."""

from dataclasses import dataclass, field
from typing import Any, Literal, Union

SourceType = Literal["html", "pdf"]


class FetchError(Exception):
    """A single URL could not be fetched or converted."""


@dataclass(frozen=True)
class SearchResult:
    """One organic result, in the order the search provider ranked it."""

    title: str
    link: str
    snippet: str = ""
    date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "link": self.link, "snippet": self.snippet}
        if self.date:
            data["date"] = self.date
        return data


@dataclass(frozen=True)
class CrawlSuccess:
    source_type: SourceType
    data: str
    success: Literal[True] = True

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "sourceType": self.source_type, "data": self.data}


@dataclass(frozen=True)
class CrawlFailure:
    error: str
    success: Literal[False] = False

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.error}


CrawlOutcome = Union[CrawlSuccess, CrawlFailure]


@dataclass(frozen=True)
class UrlCrawlResult:
    url: str
    result: CrawlOutcome

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "result": self.result.to_dict()}


@dataclass(frozen=True)
class CrawlBatchResult:
    """
    Per-URL outcomes in submission order.

    `success` is True only when every URL succeeded; a failed batch still carries
    every successful page, so consumers read `results` regardless of the flag.
    """

    results: tuple[UrlCrawlResult, ...]
    error: str | None = None

    @property
    def success(self) -> bool:
        return all(item.result.success for item in self.results)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "results": [item.to_dict() for item in self.results],
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class Source:
    """Flattened view of one crawl outcome for the model and the UI."""

    url: str
    content: str | None
    source_type: SourceType | None

    @classmethod
    def from_crawl(cls, item: UrlCrawlResult) -> "Source":
        if isinstance(item.result, CrawlSuccess):
            return cls(url=item.url, content=item.result.data, source_type=item.result.source_type)
        return cls(url=item.url, content=None, source_type=None)

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "content": self.content, "sourceType": self.source_type}


@dataclass(frozen=True)
class ScrapePagesResult:
    """What the scrapePages tool hands back: the raw batch plus the `sources` projection."""

    batch: CrawlBatchResult
    sources: tuple[Source, ...] = field(default_factory=tuple)

    @classmethod
    def from_batch(cls, batch: CrawlBatchResult) -> "ScrapePagesResult":
        return cls(batch=batch, sources=tuple(Source.from_crawl(item) for item in batch.results))

    @classmethod
    def all_failed(cls, urls: list[str], message: str) -> "ScrapePagesResult":
        batch = CrawlBatchResult(
            results=tuple(UrlCrawlResult(url=url, result=CrawlFailure(error=message)) for url in urls),
            error=message,
        )
        return cls.from_batch(batch)

    @property
    def success(self) -> bool:
        return self.batch.success

    def to_dict(self) -> dict[str, Any]:
        data = self.batch.to_dict()
        data["sources"] = [source.to_dict() for source in self.sources]
        return data
