"""Serper (Google Search) client used by the searchWeb tool."""

from typing import Any

import httpx

from utils.logger import get_logger

from .cache import InMemoryTTLCache
from .contracts import SearchResult

logger = get_logger(__name__)

SERPER_SEARCH_URL = "https://google.serper.dev/search"
DEFAULT_TIMEOUT_S = 10.0
MAX_RESULTS = 20


class SearchError(Exception):
    """The search provider failed or returned an unusable payload."""


class SerperClient:
    """
    Async Serper client with an optional TTL cache.

    Results keep the provider's ranking; nothing is re-sorted here.
    """

    def __init__(
        self,
        api_key: str,
        cache: InMemoryTTLCache | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        if not api_key:
            raise ValueError("SERPER_API_KEY not found in environment")
        self.api_key = api_key
        self.cache = cache
        self._http_client = http_client
        self.timeout_s = timeout_s

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"X-API-KEY": self.api_key, "Content-Type": "application/json"}
        if self._http_client is not None:
            response = await self._http_client.post(SERPER_SEARCH_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(SERPER_SEARCH_URL, json=payload, headers=headers)
        response.raise_for_status()
        return response.json() if response.content else {}

    async def search(self, query: str, num: int = 10) -> dict[str, Any]:
        """
        Run a web search.

        Args:
            query: Search query
            num: Number of organic results to request (clamped to 1..20)

        Returns:
            Raw provider payload; `organic` holds the ranked results

        Raises:
            SearchError: On HTTP or payload errors
        """
        num = max(1, min(int(num), MAX_RESULTS))
        cache_key = InMemoryTTLCache.make_key("serper", query, num)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Search cache hit: '{query[:60]}'")
                return cached

        logger.info(f"Serper search: '{query[:100]}' (num={num})")
        try:
            payload = await self._post({"q": query, "num": num})
        except httpx.HTTPStatusError as e:
            raise SearchError(
                f"Serper returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise SearchError(f"Serper request failed: {e}") from e

        if not isinstance(payload, dict):
            raise SearchError("Serper returned a non-object payload")

        if self.cache is not None:
            self.cache.set(cache_key, payload)
        return payload

    async def search_results(self, query: str, num: int = 10) -> list[SearchResult]:
        payload = await self.search(query, num)
        results = []
        for item in payload.get("organic") or []:
            link = str(item.get("link") or "").strip()
            if not link:
                continue
            results.append(
                SearchResult(
                    title=str(item.get("title") or link),
                    link=link,
                    snippet=str(item.get("snippet") or ""),
                    date=item.get("date"),
                )
            )
        logger.info(f"Serper returned {len(results)} organic results")
        return results

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
