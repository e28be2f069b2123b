import asyncio
import json

import httpx
import pytest

from tools.web.cache import InMemoryTTLCache
from tools.web.serper_client import SearchError, SerperClient

ORGANIC = {
    "organic": [
        {"title": "2025 standings", "link": "https://www.formula1.com/results", "snippet": "Norris", "date": "Dec 8, 2025"},
        {"title": "No link"},
        {"link": "https://en.wikipedia.org/wiki/2025_Formula_One_World_Championship"},
    ]
}


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_search_results_keep_provider_order_and_skip_linkless():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=ORGANIC)

    async def run():
        client = SerperClient(api_key="k", http_client=_client(handler))
        try:
            return await client.search_results("f1 champion 2025", num=50)
        finally:
            await client.aclose()

    results = asyncio.run(run())

    assert [r.link for r in results] == [
        "https://www.formula1.com/results",
        "https://en.wikipedia.org/wiki/2025_Formula_One_World_Championship",
    ]
    assert results[0].date == "Dec 8, 2025"
    assert results[1].title == results[1].link
    assert seen[0].headers["X-API-KEY"] == "k"
    assert json.loads(seen[0].content) == {"q": "f1 champion 2025", "num": 20}


def test_cached_query_hits_network_once():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=ORGANIC)

    async def run():
        client = SerperClient(api_key="k", cache=InMemoryTTLCache(ttl_seconds=60), http_client=_client(handler))
        await client.search("q", 5)
        await client.search("q", 5)
        await client.aclose()

    asyncio.run(run())
    assert len(calls) == 1


def test_http_error_raises_search_error():
    def handler(request):
        return httpx.Response(403, text="bad key")

    async def run():
        client = SerperClient(api_key="k", http_client=_client(handler))
        try:
            await client.search("q")
        finally:
            await client.aclose()

    with pytest.raises(SearchError, match="403"):
        asyncio.run(run())


def test_missing_api_key():
    with pytest.raises(ValueError):
        SerperClient(api_key="")
