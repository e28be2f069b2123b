import asyncio

import httpx
import pytest

from tools.web.cache import InMemoryTTLCache
from tools.web.contracts import CrawlFailure, CrawlSuccess, FetchError
from tools.web.extract import extract_article_text, extract_pdf_text, is_pdf_response
from tools.web.page_fetcher import ROBOTS_BLOCKED_MESSAGE, PageFetcher

ARTICLE_HTML = """
<html>
  <head><script>var tracking = 1;</script><style>p {}</style></head>
  <body>
    <nav><a href="https://example.com/">Home</a></nav>
    <article>
      <h1>Championship recap</h1>
      <p>Lando Norris won the title. See the <a href="https://example.com/standings">final standings</a>.</p>
      <ul><li>Nine wins</li><li>Twelve podiums</li></ul>
    </article>
    <footer>Copyright</footer>
  </body>
</html>
"""


def _pdf_with_text(text: str) -> bytes:
    content = f"BT /F1 18 Tf 20 100 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 144] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    out += b"".join(b"%010d 00000 n \n" % offset for offset in offsets)
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


class Site:
    """MockTransport handler serving robots.txt and pages, counting page requests."""

    def __init__(self, robots: str | None = None):
        self.robots = robots
        self.pages: dict[str, dict] = {}
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/robots.txt":
            if self.robots is None:
                return httpx.Response(404)
            return httpx.Response(200, text=self.robots)
        self.requests.append(str(request.url))
        spec = self.pages.get(str(request.url))
        # A fresh response per request; httpx consumes response streams
        return httpx.Response(**spec) if spec is not None else httpx.Response(404)


def _fetcher(site: Site, clock, **kwargs) -> PageFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(site))
    return PageFetcher(http_client=client, clock=clock, **kwargs)


def test_html_page_is_converted_to_markdown(clock):
    site = Site()
    site.pages["https://example.com/recap"] = {
        "status_code": 200,
        "text": ARTICLE_HTML,
        "headers": {"content-type": "text/html"},
    }

    outcome = asyncio.run(_fetcher(site, clock).fetch("https://example.com/recap"))

    assert isinstance(outcome, CrawlSuccess)
    assert outcome.source_type == "html"
    assert "# Championship recap" in outcome.data
    assert "[final standings](https://example.com/standings)" in outcome.data
    assert "- Nine wins" in outcome.data
    assert "tracking" not in outcome.data
    assert "Copyright" not in outcome.data


def test_robots_disallow_blocks_without_fetching(clock):
    site = Site(robots="User-agent: *\nDisallow: /private\n")
    site.pages["https://example.com/private/page"] = {"status_code": 200, "text": ARTICLE_HTML}

    outcome = asyncio.run(_fetcher(site, clock).fetch("https://example.com/private/page"))

    assert outcome == CrawlFailure(error=ROBOTS_BLOCKED_MESSAGE)
    assert site.requests == []


def test_client_error_is_not_retried(clock):
    site = Site()

    outcome = asyncio.run(_fetcher(site, clock).fetch("https://example.com/missing"))

    assert isinstance(outcome, CrawlFailure)
    assert outcome.error.startswith("Failed to fetch website after 1 attempt(s)")
    assert len(site.requests) == 1
    assert clock.sleeps == []


def test_server_errors_retry_with_backoff(clock):
    site = Site()
    site.pages["https://example.com/flaky"] = {"status_code": 503}

    outcome = asyncio.run(_fetcher(site, clock, max_retries=3).fetch("https://example.com/flaky"))

    assert isinstance(outcome, CrawlFailure)
    assert "after 3 attempt(s)" in outcome.error
    assert len(site.requests) == 3
    assert clock.sleeps == [1.0, 2.0]


def test_pdf_response_uses_pdf_extraction(clock):
    site = Site()
    site.pages["https://example.com/report"] = {
        "status_code": 200,
        "content": _pdf_with_text("Hello PDF"),
        "headers": {"content-type": "application/pdf"},
    }

    outcome = asyncio.run(_fetcher(site, clock).fetch("https://example.com/report"))

    assert isinstance(outcome, CrawlSuccess)
    assert outcome.source_type == "pdf"
    assert "Hello PDF" in outcome.data


def test_successes_are_cached(clock):
    site = Site()
    site.pages["https://example.com/recap"] = {"status_code": 200, "text": ARTICLE_HTML}
    fetcher = _fetcher(site, clock, cache=InMemoryTTLCache(ttl_seconds=60, clock=clock))

    async def scenario():
        first = await fetcher.fetch("https://example.com/recap")
        second = await fetcher.fetch("https://example.com/recap")
        return first, second

    first, second = asyncio.run(scenario())
    assert first == second
    assert len(site.requests) == 1


@pytest.mark.parametrize(
    "url, content_type, body, expected",
    [
        ("https://example.com/a", "application/pdf", b"", True),
        ("https://example.com/paper.PDF?dl=1", None, b"", True),
        ("https://example.com/a", "application/octet-stream", b"%PDF-1.7", True),
        ("https://example.com/a", "text/html", b"<html>", False),
    ],
)
def test_pdf_detection(url, content_type, body, expected):
    assert is_pdf_response(url, content_type, body) is expected


def test_empty_page_raises_fetch_error():
    with pytest.raises(FetchError):
        extract_article_text("<html><body><script>x()</script></body></html>")


def test_unparseable_pdf_raises_fetch_error():
    with pytest.raises(FetchError):
        extract_pdf_text(b"not a pdf at all")
