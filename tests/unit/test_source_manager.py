"""Unit tests for SourceManager."""

import pytest
from aiohttp import web

from arl_news.config.source_manager import SourceManager
from arl_news.ingestion.interfaces import Region


class TestSourceManager:
    """Tests for source CRUD through the manager."""

    def test_add_and_toggle(self, storage):
        manager = SourceManager(storage)
        source = manager.add_source(name="Mining Weekly", url="https://mw.example/rss", region="ghana")

        assert source.region == Region.GHANA
        assert source.category == "general"
        assert manager.toggle_source(source.id, False).is_active is False
        assert manager.toggle_source(source.id, True).is_active is True

    def test_update_and_delete(self, storage, sample_source):
        manager = SourceManager(storage)

        assert manager.update_source(sample_source.id, category="mining").category == "mining"
        assert [s.name for s in manager.list_sources()] == ["Example Source"]
        assert manager.delete_source(sample_source.id) is True
        assert manager.get_source(sample_source.id) is None

    def test_add_invalid(self, storage):
        with pytest.raises(ValueError):
            SourceManager(storage).add_source(name="Bad", url="https://bad.example/rss", region="asia")


@pytest.mark.asyncio
class TestValidateFeedUrl:
    """Tests for validate_feed_url."""

    async def test_valid_feed(self, storage, feed_server, rss_feed_xml):
        async def handler(request):
            return web.Response(text=rss_feed_xml, content_type="application/rss+xml")

        async with feed_server({"/feed": handler}) as server:
            result = await SourceManager(storage).validate_feed_url(str(server.make_url("/feed")))

        assert result["valid"] is True
        assert result["title"] == "Example Mining Feed"
        assert result["item_count"] == 3
        assert result["error"] is None

    async def test_http_error(self, storage, feed_server):
        async def handler(request):
            return web.Response(status=404)

        async with feed_server({"/feed": handler}) as server:
            result = await SourceManager(storage).validate_feed_url(str(server.make_url("/feed")))

        assert result == {"valid": False, "error": "HTTP 404"}

    async def test_unreachable(self, storage, unused_tcp_port):
        result = await SourceManager(storage).validate_feed_url(f"http://127.0.0.1:{unused_tcp_port}/feed")

        assert result["valid"] is False
        assert result["error"].startswith("Connection error")
