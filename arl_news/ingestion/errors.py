"""Errors raised while fetching and parsing feeds."""

from typing import Optional


class NewsAggregatorError(Exception):
    """Base class for aggregator errors."""


class FetchError(NewsAggregatorError):
    """Network failure, timeout or non-2xx response while retrieving a feed."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status

    @property
    def retryable(self) -> bool:
        # 4xx will not change on retry
        return self.status is None or self.status >= 500


class ParseError(NewsAggregatorError):
    """Feed text could not be turned into items."""


class SourceProcessingError(NewsAggregatorError):
    """Unexpected failure while ingesting one source."""

    def __init__(self, source_name: str, message: str):
        super().__init__(message)
        self.source_name = source_name

    def __str__(self) -> str:
        return f"{self.source_name}: {self.args[0]}"
