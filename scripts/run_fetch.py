#!/usr/bin/env python3
"""Seed news sources and run one gold news fetch."""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from arl_news.config.sources import seed_sources
from arl_news.ingestion.interfaces import NewsFilters
from arl_news.pipeline.aggregator import run_news_fetch
from arl_news.storage.factory import get_storage


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-seed", action="store_true", help="skip seeding sources from config")
    parser.add_argument("--sources", help="path to a news sources JSON file")
    parser.add_argument("--cleanup-days", type=int, help="also delete news older than this many days")
    args = parser.parse_args()

    storage = get_storage()

    print("\n" + "=" * 60)
    print("GOLD NEWS FETCHER")
    print("=" * 60 + "\n")

    if not args.no_seed:
        created, updated = seed_sources(storage, args.sources)
        print(f"Sources: {created} created, {updated} updated")

    summary = asyncio.run(run_news_fetch(storage))

    if args.cleanup_days:
        deleted = storage.cleanup_old_news(args.cleanup_days)
        print(f"Cleanup: {deleted} old articles removed")

    stats = storage.get_stats()
    print("\nRESULTS:")
    print(f"  New articles this run: {summary.total}")
    print(f"  Total articles: {stats['total']} ({stats['ghana']} Ghana, {stats['world']} world)")
    print(f"  Sources: {stats['activeSources']} active of {stats['sources']}")
    if summary.errors:
        print(f"  Fetch errors: {len(summary.errors)}")
        for error in summary.errors:
            print(f"    - {error}")

    latest = storage.query_news(NewsFilters(limit=10)).news
    if latest:
        print("\nLATEST HEADLINES:")
        for item in latest:
            title = item.title if len(item.title) <= 65 else item.title[:65] + "..."
            print(f"  [{item.region.value}] {title}")
            print(f"     {item.source} | {item.published_at:%d %b}")

    print("\n" + "=" * 60 + "\n")


if __name__ == "__main__":
    main()
