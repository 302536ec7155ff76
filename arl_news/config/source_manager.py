"""News source management - CRUD operations for administrators."""

from typing import List, Optional

import aiohttp
import feedparser
import structlog

from ..ingestion.fetcher import FEED_ACCEPT
from ..ingestion.interfaces import NewsSource
from ..storage.database import NewsStorage
from ..storage.factory import get_storage
from .settings import settings

logger = structlog.get_logger()


class SourceManager:
    """Manages news sources on behalf of the admin screens."""

    def __init__(self, storage: NewsStorage = None):
        self.storage = storage or get_storage()

    def list_sources(self) -> List[NewsSource]:
        """List all sources with their fetch bookkeeping."""
        return self.storage.list_sources()

    def get_source(self, source_id: int) -> Optional[NewsSource]:
        return self.storage.get_source(source_id)

    def add_source(
        self,
        name: str,
        url: str,
        type: str = "rss",
        region: str = "world",
        category: str = None,
    ) -> NewsSource:
        """Add a new source. Raises ValueError on invalid input."""
        return self.storage.create_source(
            name=name,
            url=url,
            type=type,
            region=region,
            category=category or "general",
        )

    def update_source(self, source_id: int, **updates) -> Optional[NewsSource]:
        """Update an existing source."""
        return self.storage.update_source(source_id, **updates)

    def toggle_source(self, source_id: int, is_active: bool) -> Optional[NewsSource]:
        """Enable or disable a source."""
        return self.update_source(source_id, is_active=is_active)

    def delete_source(self, source_id: int) -> bool:
        return self.storage.delete_source(source_id)

    async def validate_feed_url(self, url: str) -> dict:
        """Validate a feed URL by attempting to fetch and parse it."""
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=settings.fetch_timeout_seconds),
                headers={"User-Agent": settings.user_agent, "Accept": FEED_ACCEPT},
            ) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        return {
                            "valid": False,
                            "error": f"HTTP {response.status}",
                        }

                    content = await response.text(errors="replace")

            feed = feedparser.parse(content)

            if feed.bozo and not feed.entries:
                return {
                    "valid": False,
                    "error": "Not a valid RSS/Atom feed",
                }

            return {
                "valid": True,
                "title": feed.feed.get("title", "Unknown Feed"),
                "item_count": len(feed.entries),
                "error": None,
            }

        except aiohttp.ClientError as e:
            return {
                "valid": False,
                "error": f"Connection error: {str(e)}",
            }
        except Exception as e:
            logger.warning("feed_validation_failed", url=url, error=str(e))
            return {
                "valid": False,
                "error": str(e) or e.__class__.__name__,
            }
