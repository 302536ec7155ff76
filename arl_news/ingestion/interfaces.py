"""Interface definitions for news ingestion."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceType(Enum):
    """How a source is fetched."""
    RSS = "rss"
    API = "api"


class Region(Enum):
    """Audience region a source is filed under."""
    GHANA = "ghana"
    WORLD = "world"


@dataclass
class NewsSource:
    """An administrator-configured feed endpoint."""
    name: str
    url: str
    type: SourceType = SourceType.RSS
    region: Region = Region.WORLD
    category: str = "general"
    is_active: bool = True
    fetch_interval: int = 60  # minutes
    last_fetched: Optional[datetime] = None
    last_error: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to the camelCase shape served by the API."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "type": self.type.value,
            "region": self.region.value,
            "category": self.category,
            "isActive": self.is_active,
            "fetchInterval": self.fetch_interval,
            "lastFetched": self.last_fetched.isoformat() if self.last_fetched else None,
            "lastError": self.last_error,
        }


@dataclass
class RawFeedItem:
    """A normalized item parsed from a feed, before hashing and storage."""
    title: str
    url: str
    summary: Optional[str] = None
    published_at: datetime = field(default_factory=utcnow)
    image_url: Optional[str] = None


@dataclass
class ExternalNewsItem:
    """A stored news item. Never modified once saved."""
    title: str
    source: str  # source name, copied from the NewsSource
    source_url: str
    url: str
    published_at: datetime
    region: Region
    hash: str
    category: str = "general"
    summary: Optional[str] = None
    image_url: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_raw(cls, raw: RawFeedItem, source: NewsSource, hash: str) -> "ExternalNewsItem":
        """Attach source metadata to a parsed item."""
        return cls(
            title=raw.title,
            source=source.name,
            source_url=source.url,
            url=raw.url,
            summary=raw.summary,
            image_url=raw.image_url,
            published_at=raw.published_at,
            region=source.region,
            category=source.category or "general",
            hash=hash,
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase shape served by the API."""
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "url": self.url,
            "summary": self.summary,
            "imageUrl": self.image_url,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "region": self.region.value,
            "category": self.category,
        }


@dataclass
class NewsFilters:
    """Filters for paginated news reads."""
    region: Optional[Region] = None
    category: Optional[str] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 20


@dataclass
class NewsPage:
    """One page of news items."""
    news: List[ExternalNewsItem]
    total: int
    page: int
    total_pages: int


@dataclass
class FetchSummary:
    """Outcome of one batch run."""
    total: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"total": self.total, "errors": list(self.errors)}


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch(self, url: str) -> str:
        """Return the body of the feed at url."""
        raise NotImplementedError


class StorageInterface:
    """Interface for news storage."""

    def exists(self, hash: str) -> bool:
        """Check if an item with given hash exists."""
        raise NotImplementedError

    def insert_if_absent(self, item: ExternalNewsItem) -> bool:
        """Insert item unless its hash is already stored. True if inserted."""
        raise NotImplementedError

    def get_active_sources(self) -> List[NewsSource]:
        """Get all sources flagged active."""
        raise NotImplementedError

    def mark_source_fetched(self, source_id: int, error: Optional[str] = None) -> None:
        """Record a fetch attempt on a source."""
        raise NotImplementedError
