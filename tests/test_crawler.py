import asyncio

from tools.web.contracts import CrawlFailure, CrawlSuccess
from tools.web.crawler import MultiUrlCrawler


class ScriptedFetcher:
    """Per-URL outcomes with per-URL delays, tracking peak concurrency."""

    def __init__(self, outcomes, delays=None):
        self.outcomes = outcomes
        self.delays = delays or {}
        self.active = 0
        self.peak = 0

    async def fetch(self, url):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            outcome = self.outcomes[url]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active -= 1


def test_results_keep_submission_order_with_partial_failure():
    urls = ["https://a.example/1", "https://b.example/2", "https://c.example/3"]
    fetcher = ScriptedFetcher(
        {
            urls[0]: CrawlSuccess(source_type="html", data="first"),
            urls[1]: CrawlFailure(error="404 Not Found"),
            urls[2]: CrawlSuccess(source_type="pdf", data="third"),
        },
        # later URLs finish first
        delays={urls[0]: 0.03, urls[1]: 0.02, urls[2]: 0},
    )

    batch = asyncio.run(MultiUrlCrawler(fetcher).crawl_many(urls))

    assert [item.url for item in batch.results] == urls
    assert batch.success is False
    assert batch.results[0].result.data == "first"
    assert batch.results[2].result.data == "third"
    assert batch.error == "Failed to crawl some websites:\nhttps://b.example/2: 404 Not Found"


def test_unexpected_fetcher_exception_becomes_failure():
    url = "https://a.example/boom"
    fetcher = ScriptedFetcher({url: RuntimeError("parser exploded")})

    batch = asyncio.run(MultiUrlCrawler(fetcher).crawl_many([url]))

    assert batch.results[0].result == CrawlFailure(error="parser exploded")


def test_all_success_has_no_error():
    urls = ["https://a.example/1", "https://a.example/2"]
    fetcher = ScriptedFetcher({url: CrawlSuccess(source_type="html", data=url) for url in urls})

    batch = asyncio.run(MultiUrlCrawler(fetcher).crawl_many(urls))

    assert batch.success is True
    assert batch.error is None
    assert batch.to_dict()["results"][1] == {
        "url": urls[1],
        "result": {"success": True, "sourceType": "html", "data": urls[1]},
    }


def test_concurrency_is_bounded():
    urls = [f"https://a.example/{i}" for i in range(10)]
    fetcher = ScriptedFetcher(
        {url: CrawlSuccess(source_type="html", data="x") for url in urls},
        delays={url: 0.01 for url in urls},
    )

    asyncio.run(MultiUrlCrawler(fetcher, max_concurrency=3).crawl_many(urls))

    assert fetcher.peak == 3
