"""Gold news aggregation: per-source ingestion and batch runs."""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
import structlog

from ..config.settings import settings
from ..ingestion.errors import SourceProcessingError
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.hashing import news_hash
from ..ingestion.interfaces import (
    ExternalNewsItem, FetchSummary, FetcherInterface, NewsSource, SourceType, StorageInterface,
)
from ..ingestion.parser import FeedParser
from ..storage.factory import get_storage

logger = structlog.get_logger()


def is_due(source: NewsSource, now: datetime = None, slack: timedelta = None) -> bool:
    """True when the source's fetch interval has elapsed since its last fetch.

    last_fetched is stamped when a batch finishes, a little after the
    scheduler tick that started it, so the interval is shortened by slack
    (half the scheduler period by default) to keep sources on every tick.
    """
    if source.last_fetched is None:
        return True
    now = now or datetime.now(timezone.utc)
    if slack is None:
        slack = timedelta(minutes=settings.fetch_interval_minutes) / 2
    interval = timedelta(minutes=source.fetch_interval or 0)
    return now - source.last_fetched >= interval - slack


class NewsAggregator:
    """Fetches active sources and stores the new items they carry."""

    def __init__(
        self,
        storage: StorageInterface = None,
        fetcher: FetcherInterface = None,
        parser: FeedParser = None,
    ):
        self.storage = storage or get_storage()
        self.fetcher = fetcher
        self.parser = parser or FeedParser()

    @asynccontextmanager
    async def _open_fetcher(self):
        # An injected fetcher is owned by the caller
        if self.fetcher is not None:
            yield self.fetcher
            return
        async with FeedFetcher() as fetcher:
            yield fetcher

    async def ingest_source(self, source: NewsSource, fetcher: FetcherInterface = None) -> int:
        """Fetch one source and store its new items. Returns the new-item count.

        The source's last_fetched is bumped whatever happens. On failure its
        last_error is set and the error is re-raised for the batch to report.
        """
        if fetcher is None:
            async with self._open_fetcher() as fetcher:
                return await self.ingest_source(source, fetcher)

        start_time = time.time()
        try:
            items = []
            if source.type == SourceType.RSS:
                xml = await fetcher.fetch(source.url)
                items = self.parser.parse(xml)
            else:
                logger.info("source_type_unsupported", source=source.name, type=source.type.value)

            new_count = 0
            for raw in items:
                hash = news_hash(raw.title, source.name)
                if self.storage.exists(hash):
                    continue
                try:
                    if self.storage.insert_if_absent(ExternalNewsItem.from_raw(raw, source, hash)):
                        new_count += 1
                except SQLAlchemyError as e:
                    logger.warning("news_item_save_failed", source=source.name, url=raw.url[:50], error=str(e))
        except Exception as e:
            self.storage.mark_source_fetched(source.id, error=str(e) or e.__class__.__name__)
            raise

        self.storage.mark_source_fetched(source.id, error=None)
        logger.info(
            "source_fetched",
            source=source.name,
            items=len(items),
            new=new_count,
            time_ms=int((time.time() - start_time) * 1000),
        )
        return new_count

    async def fetch_all(self, only_due: bool = False) -> FetchSummary:
        """Run every active source in turn. Per-source failures land in errors."""
        sources = self.storage.get_active_sources()
        if only_due:
            now = datetime.now(timezone.utc)
            sources = [s for s in sources if is_due(s, now)]

        summary = FetchSummary()
        async with self._open_fetcher() as fetcher:
            for source in sources:
                try:
                    summary.total += await self.ingest_source(source, fetcher)
                except Exception as e:
                    error = SourceProcessingError(source.name, str(e) or e.__class__.__name__)
                    summary.errors.append(str(error))
                    logger.error("source_fetch_failed", source=source.name, error=error.args[0])

        logger.info(
            "news_batch_completed",
            sources=len(sources),
            new=summary.total,
            errors=len(summary.errors),
        )
        return summary


async def run_news_fetch(storage: StorageInterface = None, only_due: bool = False) -> FetchSummary:
    """Run one batch across all active sources."""
    aggregator = NewsAggregator(storage=storage)
    return await aggregator.fetch_all(only_due=only_due)
