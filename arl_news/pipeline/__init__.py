"""Aggregation pipeline orchestration."""

from .aggregator import NewsAggregator, run_news_fetch, is_due

__all__ = ["NewsAggregator", "run_news_fetch", "is_due"]
