"""SQLAlchemy models for the gold news database."""

from datetime import datetime, timezone

from sqlalchemy import create_engine, Column, Integer, String, Text, Boolean, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewsSourceModel(Base):
    """Database model for administrator-configured news sources."""
    __tablename__ = "news_sources"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(255), unique=True, nullable=False)
    url = Column(String(2048), nullable=False)
    type = Column(String(10), nullable=False, default="rss")  # rss, api
    region = Column(String(10), nullable=False)  # ghana, world
    category = Column(String(100), default="general")

    is_active = Column(Boolean, default=True, nullable=False)
    fetch_interval = Column(Integer, default=60)  # minutes

    # Fetch bookkeeping
    last_fetched = Column(DateTime(timezone=True))
    last_error = Column(Text)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index('idx_sources_active_type', 'is_active', 'type'),
        Index('idx_sources_region', 'region'),
    )


class ExternalNewsModel(Base):
    """Database model for aggregated news items."""
    __tablename__ = "external_news"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(Text, nullable=False)
    source = Column(String(255), nullable=False)  # source name, not a foreign key
    source_url = Column(String(2048), nullable=False)
    url = Column(String(2048), nullable=False)
    summary = Column(String(500))
    image_url = Column(String(2048))

    published_at = Column(DateTime(timezone=True), nullable=False)
    region = Column(String(10), nullable=False)
    category = Column(String(100), default="general")

    # Deduplication
    hash = Column(String(32), unique=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index('idx_news_region_published', 'region', 'published_at'),
        Index('idx_news_published', 'published_at'),
        Index('idx_news_category', 'category'),
    )


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine
