"""
Concurrent multi-URL crawl with order-preserving fan-in.

Each URL resolves independently to a CrawlOutcome; one failing URL never fails
the others. Concurrency is capped so a long URL list cannot open unbounded
outbound connections.
"""

import asyncio
from typing import Protocol

from utils.logger import get_logger

from .contracts import CrawlBatchResult, CrawlFailure, CrawlOutcome, UrlCrawlResult

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 6


class PageFetchProvider(Protocol):
    async def fetch(self, url: str) -> CrawlOutcome: ...


class MultiUrlCrawler:
    def __init__(self, fetcher: PageFetchProvider, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency

    async def _crawl_one(self, url: str, semaphore: asyncio.Semaphore) -> UrlCrawlResult:
        async with semaphore:
            try:
                outcome = await self.fetcher.fetch(url)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    f"Unexpected error crawling {url}: {e}",
                    extra={"extra_fields": {"url": url, "error_type": type(e).__name__}},
                )
                outcome = CrawlFailure(error=str(e) or type(e).__name__)
        return UrlCrawlResult(url=url, result=outcome)

    async def crawl_many(self, urls: list[str]) -> CrawlBatchResult:
        """
        Crawl all URLs concurrently.

        Returns:
            CrawlBatchResult with one entry per URL, in the order given
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(*(self._crawl_one(url, semaphore) for url in urls))

        failures = [item for item in results if not item.result.success]
        error = None
        if failures:
            error = "Failed to crawl some websites:\n" + "\n".join(
                f"{item.url}: {item.result.error}" for item in failures
            )

        logger.info(
            f"Crawl complete: {len(results) - len(failures)} success, {len(failures)} failed",
            extra={
                "extra_fields": {
                    "url_count": len(urls),
                    "failed_urls": [item.url for item in failures],
                }
            },
        )
        return CrawlBatchResult(results=tuple(results), error=error)

    async def aclose(self) -> None:
        close = getattr(self.fetcher, "aclose", None)
        if close is not None:
            await close()
