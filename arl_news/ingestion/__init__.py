"""News ingestion - fetching, parsing and fingerprinting feeds."""

from .interfaces import (
    SourceType, Region, NewsSource, RawFeedItem, ExternalNewsItem,
    NewsFilters, NewsPage, FetchSummary, FetcherInterface, StorageInterface,
)
from .errors import NewsAggregatorError, FetchError, ParseError, SourceProcessingError
from .fetcher import FeedFetcher
from .parser import FeedParser, parse_feed, read_feed
from .hashing import news_hash

__all__ = [
    "SourceType", "Region", "NewsSource", "RawFeedItem", "ExternalNewsItem",
    "NewsFilters", "NewsPage", "FetchSummary", "FetcherInterface", "StorageInterface",
    "NewsAggregatorError", "FetchError", "ParseError", "SourceProcessingError",
    "FeedFetcher", "FeedParser", "parse_feed", "read_feed", "news_hash",
]
