import asyncio

import httpx
import pytest

from config.config import Config
from tools.web import create_search_client


def test_search_client_reuses_one_pooled_http_client():
    config = Config()
    config.SERPER_API_KEY = "serper-key"

    client = create_search_client(config)
    try:
        assert isinstance(client._http_client, httpx.AsyncClient)
        assert client.cache is not None
    finally:
        asyncio.run(client.aclose())
    assert client._http_client.is_closed


def test_search_client_requires_api_key():
    config = Config()
    config.SERPER_API_KEY = None
    with pytest.raises(ValueError):
        create_search_client(config)
