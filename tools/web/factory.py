"""Factories wiring the web retrieval providers from configuration."""

import httpx

from config.config import Config
from utils.logger import get_logger

from .cache import InMemoryTTLCache
from .crawler import MultiUrlCrawler
from .page_fetcher import PageFetcher
from .serper_client import DEFAULT_TIMEOUT_S, SerperClient

logger = get_logger(__name__)

# Process-shared caches, so repeated questions do not re-hit Serper or the same pages
_search_cache: InMemoryTTLCache | None = None
_crawl_cache: InMemoryTTLCache | None = None


def _caches(config: Config) -> tuple[InMemoryTTLCache, InMemoryTTLCache]:
    global _search_cache, _crawl_cache
    if _search_cache is None:
        _search_cache = InMemoryTTLCache(ttl_seconds=config.SEARCH_CACHE_TTL_SECONDS)
    if _crawl_cache is None:
        _crawl_cache = InMemoryTTLCache(ttl_seconds=config.CRAWL_CACHE_TTL_SECONDS, max_entries=500)
    return _search_cache, _crawl_cache


def create_search_client(config: Config) -> SerperClient:
    """
    Raises:
        ValueError: If SERPER_API_KEY is not set
    """
    search_cache, _ = _caches(config)
    if not config.SERPER_API_KEY:
        raise ValueError("SERPER_API_KEY not found in environment")
    # One pooled client per search client; SerperClient.aclose() releases it
    http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_S)
    return SerperClient(api_key=config.SERPER_API_KEY, cache=search_cache, http_client=http_client)


def create_crawler(config: Config) -> MultiUrlCrawler:
    _, crawl_cache = _caches(config)
    fetcher = PageFetcher(
        cache=crawl_cache,
        max_retries=config.CRAWL_MAX_RETRIES,
        timeout_s=config.CRAWL_TIMEOUT_S,
    )
    logger.info(
        "Crawler initialized",
        extra={
            "extra_fields": {
                "max_concurrency": config.CRAWL_MAX_CONCURRENCY,
                "max_retries": config.CRAWL_MAX_RETRIES,
            }
        },
    )
    return MultiUrlCrawler(fetcher, max_concurrency=config.CRAWL_MAX_CONCURRENCY)
