"""HTTP feed fetcher with timeout and retries."""

import asyncio
import time
from typing import Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential
import structlog

from .errors import FetchError
from .interfaces import FetcherInterface
from ..config.settings import settings

logger = structlog.get_logger()

FEED_ACCEPT = "application/rss+xml, application/xml, application/atom+xml, text/xml, */*"


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, FetchError) and error.retryable


class FeedFetcher(FetcherInterface):
    """Async feed fetcher. One request at a time, hard per-request timeout."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.max_attempts = max(1, max_attempts or settings.fetch_max_retries)
        self.user_agent = user_agent or settings.user_agent
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={
                "User-Agent": self.user_agent,
                "Accept": FEED_ACCEPT,
            },
        )
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> str:
        """Return the feed body. Transient failures are retried."""
        if self.session is None:
            raise RuntimeError("FeedFetcher must be used as an async context manager")

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                body = await self._get(url)
        return body

    async def _get(self, url: str) -> str:
        start_time = time.time()
        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(url, f"HTTP {response.status}", status=response.status)
                body = await response.text(errors="replace")
        except asyncio.TimeoutError as e:
            logger.warning("feed_fetch_timeout", url=url, timeout=self.timeout_seconds)
            raise FetchError(url, f"Timeout after {self.timeout_seconds:g}s") from e
        except aiohttp.ClientError as e:
            logger.warning("feed_fetch_failed", url=url, error=str(e))
            raise FetchError(url, str(e) or e.__class__.__name__) from e

        logger.debug(
            "feed_fetched",
            url=url,
            bytes=len(body),
            time_ms=int((time.time() - start_time) * 1000),
        )
        return body
