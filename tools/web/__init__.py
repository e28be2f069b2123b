"""Web retrieval tools: Serper search and concurrent page crawling."""

from .contracts import (
    CrawlBatchResult,
    CrawlFailure,
    CrawlOutcome,
    CrawlSuccess,
    FetchError,
    ScrapePagesResult,
    SearchResult,
    Source,
    UrlCrawlResult,
)
from .crawler import MultiUrlCrawler
from .factory import create_crawler, create_search_client
from .serper_client import SearchError, SerperClient

__all__ = [
    "CrawlBatchResult",
    "CrawlFailure",
    "CrawlOutcome",
    "CrawlSuccess",
    "FetchError",
    "MultiUrlCrawler",
    "ScrapePagesResult",
    "SearchError",
    "SearchResult",
    "SerperClient",
    "Source",
    "UrlCrawlResult",
    "create_crawler",
    "create_search_client",
]
