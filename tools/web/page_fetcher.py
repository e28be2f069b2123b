"""Fetch one URL and turn it into a CrawlOutcome."""

import httpx

from utils.clock import SYSTEM_CLOCK, Clock
from utils.logger import get_logger

from .cache import InMemoryTTLCache
from .contracts import CrawlFailure, CrawlOutcome, CrawlSuccess, FetchError
from .extract import extract_article_text, extract_pdf_text, is_pdf_response
from .robots import USER_AGENT, RobotsChecker

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
MIN_DELAY_MS = 500
MAX_DELAY_MS = 8000
ROBOTS_BLOCKED_MESSAGE = "Unable to crawl this website. It has been blocked by robots.txt."


def backoff_delay_ms(attempt: int) -> int:
    """Exponential delay before the next attempt, capped at MAX_DELAY_MS."""
    return min(MIN_DELAY_MS * (2**attempt), MAX_DELAY_MS)


class PageFetcher:
    """
    robots.txt check, then GET with retries and exponential backoff.

    fetch() never raises for a failing URL: every problem becomes a CrawlFailure.
    Only cancellation propagates.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        cache: InMemoryTTLCache | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout_s: float = 15.0,
        respect_robots: bool = True,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self.cache = cache
        self.max_retries = max(1, max_retries)
        self.robots = RobotsChecker(self._http_client) if respect_robots else None
        self._clock = clock

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def fetch(self, url: str) -> CrawlOutcome:
        cache_key = InMemoryTTLCache.make_key("crawl", url)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Crawl cache hit: {url}")
                return cached

        if self.robots is not None and not await self.robots.is_allowed(url):
            logger.info(f"Blocked by robots.txt: {url}")
            return CrawlFailure(error=ROBOTS_BLOCKED_MESSAGE)

        outcome = await self._fetch_with_retries(url)
        if self.cache is not None and isinstance(outcome, CrawlSuccess):
            self.cache.set(cache_key, outcome)
        return outcome

    async def _fetch_with_retries(self, url: str) -> CrawlOutcome:
        last_error = "unknown error"
        attempts = 0
        for attempt in range(1, self.max_retries + 1):
            attempts = attempt
            try:
                response = await self._http_client.get(url)
                if response.is_success:
                    return self._convert(url, response)
                last_error = f"{response.status_code} {response.reason_phrase}"
                # Client errors other than throttling will not change on retry
                if 400 <= response.status_code < 500 and response.status_code != 429:
                    break
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
            except FetchError as e:
                return CrawlFailure(error=str(e))

            if attempt < self.max_retries:
                delay_ms = backoff_delay_ms(attempt)
                logger.debug(
                    f"Retrying {url} in {delay_ms}ms",
                    extra={"extra_fields": {"url": url, "attempt": attempt, "error": last_error}},
                )
                await self._clock.sleep(delay_ms / 1000)

        logger.warning(
            f"Failed to fetch {url}",
            extra={"extra_fields": {"url": url, "error": last_error}},
        )
        return CrawlFailure(error=f"Failed to fetch website after {attempts} attempt(s): {last_error}")

    def _convert(self, url: str, response: httpx.Response) -> CrawlOutcome:
        content_type = response.headers.get("content-type")
        if is_pdf_response(url, content_type, response.content):
            return CrawlSuccess(source_type="pdf", data=extract_pdf_text(response.content))
        return CrawlSuccess(source_type="html", data=extract_article_text(response.text))
