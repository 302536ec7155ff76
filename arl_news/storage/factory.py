"""Factory functions to create storage instances.

The database URL comes from DATABASE_URL (standard for cloud platforms),
then ARL_DATABASE_URL, then settings. Any SQLAlchemy URL works; SQLite is the
local default and PostgreSQL is used in production.
"""

import os
from functools import lru_cache

import structlog

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    url = os.environ.get('DATABASE_URL')
    if url:
        return url

    url = os.environ.get('ARL_DATABASE_URL')
    if url:
        return url

    from ..config.settings import settings
    return settings.database_url


def is_postgres() -> bool:
    """Check if we're using PostgreSQL."""
    url = get_database_url()
    return url.startswith('postgresql://') or url.startswith('postgres://')


@lru_cache(maxsize=1)
def get_storage():
    """Get the shared NewsStorage instance."""
    from .database import NewsStorage

    url = get_database_url()
    if url.startswith('postgres://'):
        # SQLAlchemy only accepts the postgresql:// scheme
        url = 'postgresql://' + url[len('postgres://'):]

    logger.info("using_storage", backend="postgres" if is_postgres() else "sqlite", url=url[:40] + "...")
    return NewsStorage(url)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_storage.cache_clear()
