"""Unit tests for the news aggregator."""

import pytest
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from arl_news.config.settings import settings
from arl_news.ingestion.errors import FetchError
from arl_news.ingestion.interfaces import NewsSource, Region, SourceType
from arl_news.pipeline.aggregator import NewsAggregator, is_due


class FakeFetcher:
    """Serves canned bodies by URL; exceptions in the map are raised."""

    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def feed(*titles):
    items = "".join(
        f"<item><title>{t}</title><link>https://example.com/{i}</link></item>"
        for i, t in enumerate(titles)
    )
    return f"<rss><channel>{items}</channel></rss>"


class TestIsDue:
    """Tests for is_due."""

    def test_never_fetched(self):
        assert is_due(NewsSource(name="A", url="u")) is True

    def test_interval_elapsed(self):
        now = datetime.now(timezone.utc)
        source = NewsSource(name="A", url="u", fetch_interval=60, last_fetched=now - timedelta(minutes=61))
        assert is_due(source, now) is True

    def test_interval_not_elapsed(self):
        now = datetime.now(timezone.utc)
        source = NewsSource(name="A", url="u", fetch_interval=60, last_fetched=now - timedelta(minutes=5))
        assert is_due(source, now) is False

    def test_due_on_next_tick_after_slow_batch(self, monkeypatch):
        """A source stamped a few seconds after the previous tick is due on the next one."""
        monkeypatch.setattr(settings, "fetch_interval_minutes", 60)
        tick = datetime.now(timezone.utc)
        source = NewsSource(
            name="A", url="u", fetch_interval=60,
            last_fetched=tick - timedelta(minutes=60) + timedelta(seconds=5),
        )
        assert is_due(source, tick) is True

    def test_longer_interval_waits_for_later_tick(self, monkeypatch):
        """A 3-hour source fetched one tick ago is not due yet."""
        monkeypatch.setattr(settings, "fetch_interval_minutes", 60)
        tick = datetime.now(timezone.utc)
        source = NewsSource(
            name="A", url="u", fetch_interval=180,
            last_fetched=tick - timedelta(minutes=60) + timedelta(seconds=5),
        )
        assert is_due(source, tick) is False

    def test_explicit_slack(self):
        now = datetime.now(timezone.utc)
        source = NewsSource(name="A", url="u", fetch_interval=60, last_fetched=now - timedelta(minutes=59))
        assert is_due(source, now, slack=timedelta(0)) is False
        assert is_due(source, now, slack=timedelta(minutes=2)) is True


@pytest.mark.asyncio
class TestIngestSource:
    """Tests for NewsAggregator.ingest_source."""

    async def test_new_items_stored(self, storage, sample_source):
        fetcher = FakeFetcher({sample_source.url: feed("Gold price rises", "Ghana output up")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        assert await aggregator.ingest_source(sample_source) == 2

        stored = storage.query_news().news
        assert {i.title for i in stored} == {"Gold price rises", "Ghana output up"}
        assert all(i.source == "Example Source" for i in stored)
        assert all(i.source_url == sample_source.url for i in stored)
        assert all(i.region == Region.WORLD for i in stored)
        assert all(i.category == "gold" for i in stored)

        source = storage.get_source(sample_source.id)
        assert source.last_fetched is not None
        assert source.last_error is None

    async def test_repeat_fetch_is_idempotent(self, storage, sample_source):
        """Re-fetching unchanged content should add nothing."""
        fetcher = FakeFetcher({sample_source.url: feed("Gold price rises", "Ghana output up")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        assert await aggregator.ingest_source(sample_source) == 2
        assert await aggregator.ingest_source(sample_source) == 0
        assert storage.query_news().total == 2

    async def test_same_title_different_case_is_duplicate(self, storage, sample_source):
        fetcher = FakeFetcher({sample_source.url: feed("Gold price rises", "GOLD PRICE RISES ")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        assert await aggregator.ingest_source(sample_source) == 1

    async def test_insert_race_counts_as_duplicate(self, storage, sample_source):
        """An item that appears between the existence check and the insert is skipped."""
        fetcher = FakeFetcher({sample_source.url: feed("Gold price rises")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)
        storage.exists = lambda hash: False

        assert await aggregator.ingest_source(sample_source) == 1
        assert await aggregator.ingest_source(sample_source) == 0
        assert storage.query_news().total == 1

    async def test_item_save_failure_does_not_fail_source(self, storage, sample_source, monkeypatch):
        fetcher = FakeFetcher({sample_source.url: feed("A", "B")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)
        original = storage.insert_if_absent

        def flaky_insert(item):
            if item.title == "A":
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return original(item)

        monkeypatch.setattr(storage, "insert_if_absent", flaky_insert)

        assert await aggregator.ingest_source(sample_source) == 1
        assert storage.get_source(sample_source.id).last_error is None

    async def test_failure_records_error_and_raises(self, storage, sample_source):
        fetcher = FakeFetcher({sample_source.url: FetchError(sample_source.url, "HTTP 500", status=500)})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        with pytest.raises(FetchError):
            await aggregator.ingest_source(sample_source)

        source = storage.get_source(sample_source.id)
        assert source.last_error == "HTTP 500"
        assert source.last_fetched is not None

    async def test_success_clears_previous_error(self, storage, sample_source):
        storage.mark_source_fetched(sample_source.id, error="HTTP 500")
        fetcher = FakeFetcher({sample_source.url: feed("Recovered")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        await aggregator.ingest_source(sample_source)

        assert storage.get_source(sample_source.id).last_error is None

    async def test_api_source_yields_nothing(self, storage):
        source = storage.create_source(name="Some API", url="https://api.example/news", type="api")
        fetcher = FakeFetcher({})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        assert source.type == SourceType.API
        assert await aggregator.ingest_source(source) == 0
        assert fetcher.requested == []
        assert storage.get_source(source.id).last_fetched is not None


@pytest.mark.asyncio
class TestFetchAll:
    """Tests for NewsAggregator.fetch_all."""

    async def test_failing_source_does_not_block_others(self, storage):
        """A's failure should be reported while B's items are still stored."""
        a = storage.create_source(name="A", url="https://a.example/feed", region="ghana")
        b = storage.create_source(name="B", url="https://b.example/feed", region="world")
        fetcher = FakeFetcher({
            a.url: FetchError(a.url, "Cannot connect to host a.example"),
            b.url: feed("B one", "B two"),
        })

        summary = await NewsAggregator(storage=storage, fetcher=fetcher).fetch_all()

        assert summary.total == 2
        assert summary.errors == ["A: Cannot connect to host a.example"]
        assert storage.get_source(a.id).last_error == "Cannot connect to host a.example"
        assert storage.get_source(b.id).last_error is None
        assert {i.source for i in storage.query_news().news} == {"B"}

    async def test_unexpected_error_reported(self, storage, sample_source):
        fetcher = FakeFetcher({sample_source.url: RuntimeError("boom")})

        summary = await NewsAggregator(storage=storage, fetcher=fetcher).fetch_all()

        assert summary.total == 0
        assert summary.errors == ["Example Source: boom"]

    async def test_inactive_sources_skipped(self, storage, sample_source):
        disabled = storage.create_source(name="Off", url="https://off.example/feed", is_active=False)
        fetcher = FakeFetcher({sample_source.url: feed("Only active")})

        summary = await NewsAggregator(storage=storage, fetcher=fetcher).fetch_all()

        assert summary.total == 1
        assert fetcher.requested == [sample_source.url]
        assert storage.get_source(disabled.id).last_fetched is None

    async def test_second_run_adds_nothing(self, storage, sample_source):
        fetcher = FakeFetcher({sample_source.url: feed("One", "Two", "Three")})
        aggregator = NewsAggregator(storage=storage, fetcher=fetcher)

        first = await aggregator.fetch_all()
        second = await aggregator.fetch_all()

        assert first.to_dict() == {"total": 3, "errors": []}
        assert second.to_dict() == {"total": 0, "errors": []}

    async def test_only_due(self, storage, sample_source):
        fresh = storage.create_source(name="Fresh", url="https://fresh.example/feed")
        storage.mark_source_fetched(fresh.id)
        fetcher = FakeFetcher({sample_source.url: feed("Due item"), fresh.url: feed("Not due")})

        summary = await NewsAggregator(storage=storage, fetcher=fetcher).fetch_all(only_due=True)

        assert summary.total == 1
        assert fetcher.requested == [sample_source.url]

    async def test_no_sources(self, storage):
        summary = await NewsAggregator(storage=storage, fetcher=FakeFetcher({})).fetch_all()
        assert summary.to_dict() == {"total": 0, "errors": []}
