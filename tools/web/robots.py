"""robots.txt checks, cached per origin."""

import threading
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import httpx

from utils.logger import get_logger

logger = get_logger(__name__)

USER_AGENT = "DeepSearchBot/1.0 (+https://github.com/deepsearch-assistant)"


class RobotsChecker:
    """
    Answers "may we fetch this URL?" from the origin's robots.txt.

    A missing or unreachable robots.txt allows crawling; only an explicit
    disallow rule blocks it.
    """

    def __init__(self, http_client: httpx.AsyncClient, user_agent: str = USER_AGENT):
        self._http_client = http_client
        self.user_agent = user_agent
        self._parsers: dict[str, RobotFileParser | None] = {}
        self._lock = threading.Lock()

    async def _load(self, origin: str) -> RobotFileParser | None:
        robots_url = f"{origin}/robots.txt"
        try:
            response = await self._http_client.get(robots_url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"robots.txt unreachable for {origin}: {e}")
            return None

        if response.status_code >= 400:
            return None

        parser = RobotFileParser(robots_url)
        parser.parse(response.text.splitlines())
        return parser

    async def is_allowed(self, url: str) -> bool:
        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"

        with self._lock:
            cached = origin in self._parsers
            parser = self._parsers.get(origin)
        if not cached:
            parser = await self._load(origin)
            with self._lock:
                self._parsers[origin] = parser

        if parser is None:
            return True
        return parser.can_fetch(self.user_agent, url)
