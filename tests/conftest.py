"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from contextlib import asynccontextmanager
from pathlib import Path

from aiohttp import web, test_utils

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/" xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
    <title>Example Mining Feed</title>
    <link>https://example.com</link>
    <item>
        <title><![CDATA[Gold price rises as <b>dollar</b> weakens]]></title>
        <link>https://example.com/news/gold-price-rises</link>
        <description><![CDATA[<p>Spot gold climbed 1.2% on Tuesday &amp; miners rallied.</p>]]></description>
        <pubDate>Tue, 14 Oct 2025 09:30:00 GMT</pubDate>
        <enclosure url="https://example.com/img/gold.jpg" type="image/jpeg" length="1024"/>
    </item>
    <item>
        <title>Ghana mine expansion approved</title>
        <guid isPermaLink="true">https://example.com/news/ghana-mine</guid>
        <content:encoded><![CDATA[<div>The regulator approved the expansion.</div>]]></content:encoded>
        <dc:date>2025-10-13T08:00:00Z</dc:date>
        <media:thumbnail url="https://example.com/img/thumb.jpg"/>
    </item>
    <item>
        <description>No title here, should be dropped</description>
        <link>https://example.com/news/untitled</link>
    </item>
</channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Example Atom Feed</title>
    <entry>
        <title type="html">Central bank gold buying hits record</title>
        <link rel="alternate" href="https://example.org/atom/central-banks"/>
        <summary>Central banks bought &lt;b&gt;more gold&lt;/b&gt; than ever.</summary>
        <updated>2025-10-12T10:00:00Z</updated>
    </entry>
    <entry>
        <title>Silver follows gold higher</title>
        <link>https://example.org/atom/silver</link>
        <content type="html">Silver rose alongside gold.</content>
        <published>2025-10-11T07:15:00+02:00</published>
    </entry>
</feed>
"""


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    """Provide a NewsStorage on a temporary database."""
    from arl_news.storage.database import NewsStorage
    return NewsStorage(temp_db)


@pytest.fixture
def rss_feed_xml():
    return RSS_FEED


@pytest.fixture
def atom_feed_xml():
    return ATOM_FEED


@pytest.fixture
def sample_source(storage):
    """Provide a persisted RSS source."""
    return storage.create_source(
        name="Example Source",
        url="https://example.com/feed.xml",
        type="rss",
        region="world",
        category="gold",
    )


@pytest.fixture
def sample_item():
    """Provide a sample ExternalNewsItem."""
    from datetime import datetime, timezone
    from arl_news.ingestion.interfaces import ExternalNewsItem, Region
    from arl_news.ingestion.hashing import news_hash
    return ExternalNewsItem(
        title="Gold price rises",
        source="Example Source",
        source_url="https://example.com/feed.xml",
        url="https://example.com/news/1",
        summary="Spot gold climbed on Tuesday.",
        published_at=datetime.now(timezone.utc),
        region=Region.WORLD,
        category="gold",
        hash=news_hash("Gold price rises", "Example Source"),
    )


@pytest.fixture
def feed_server():
    """Start a local aiohttp app; usage: async with feed_server({path: handler}) as server."""
    @asynccontextmanager
    async def _serve(handlers):
        app = web.Application()
        for path, handler in handlers.items():
            app.router.add_get(path, handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        try:
            yield server
        finally:
            await server.close()

    return _serve
