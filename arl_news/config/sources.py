"""Seed news source loader."""

import json
from pathlib import Path
from typing import List, Tuple

import structlog

from ..ingestion.interfaces import NewsSource, Region, SourceType
from .settings import settings

logger = structlog.get_logger()


def load_sources(config_path: str = None) -> List[NewsSource]:
    """Load seed source definitions from JSON file."""
    if config_path is None:
        config_path = settings.sources_file

    with open(config_path) as f:
        data = json.load(f)

    default_interval = data.get("settings", {}).get("default_fetch_interval_minutes", 60)

    sources = []
    for source_data in data.get("sources", []):
        sources.append(NewsSource(
            name=source_data["name"],
            url=source_data["url"],
            type=SourceType(source_data.get("type", "rss")),
            region=Region(source_data["region"]),
            category=source_data.get("category", "general"),
            is_active=source_data.get("enabled", True),
            fetch_interval=source_data.get("fetch_interval_minutes", default_interval),
        ))

    return sources


def seed_sources(storage, config_path: str = None) -> Tuple[int, int]:
    """Create or refresh the seed sources by name. Returns (created, updated)."""
    created = updated = 0
    for source in load_sources(config_path):
        _, was_created = storage.upsert_source_by_name(
            name=source.name,
            url=source.url,
            type=source.type.value,
            region=source.region.value,
            category=source.category,
            is_active=source.is_active,
            fetch_interval=source.fetch_interval,
        )
        if was_created:
            created += 1
        else:
            updated += 1

    logger.info("sources_seeded", created=created, updated=updated, path=str(config_path or Path(settings.sources_file)))
    return created, updated
