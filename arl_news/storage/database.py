"""Database operations for news sources and aggregated news."""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Tuple
from pathlib import Path

from sqlalchemy import func, or_
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError
import structlog

from .models import NewsSourceModel, ExternalNewsModel, init_db
from ..ingestion.interfaces import (
    ExternalNewsItem, NewsSource, NewsFilters, NewsPage, Region, SourceType, StorageInterface,
)
from ..config.settings import settings

logger = structlog.get_logger()

# Fields an administrator may change on a source
SOURCE_UPDATE_FIELDS = ("name", "url", "type", "region", "category", "is_active", "fetch_interval")


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _conditional_insert(dialect: str):
    """Dialect insert() supporting ON CONFLICT DO NOTHING, or None."""
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    return None


class NewsStorage(StorageInterface):
    """SQL storage for news sources and external news items."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)
        self._insert = _conditional_insert(self.engine.dialect.name)

    # ----- news items -----

    def exists(self, hash: str) -> bool:
        """Check if a news item with given hash exists."""
        session = self.Session()
        try:
            return session.query(ExternalNewsModel.id)\
                .filter(ExternalNewsModel.hash == hash)\
                .first() is not None
        finally:
            session.close()

    def insert_if_absent(self, item: ExternalNewsItem) -> bool:
        """Insert item unless its hash is already stored. True if inserted."""
        values = {
            "title": item.title,
            "source": item.source,
            "source_url": item.source_url,
            "url": item.url,
            "summary": item.summary,
            "image_url": item.image_url,
            "published_at": _as_utc(item.published_at),
            "region": item.region.value,
            "category": item.category or "general",
            "hash": item.hash,
            "created_at": datetime.now(timezone.utc),
        }

        session = self.Session()
        try:
            if self._insert is not None:
                stmt = self._insert(ExternalNewsModel).values(**values)\
                    .on_conflict_do_nothing(index_elements=["hash"])
                inserted = session.execute(stmt).rowcount == 1
                session.commit()
            else:
                session.add(ExternalNewsModel(**values))
                try:
                    session.commit()
                    inserted = True
                except IntegrityError:
                    session.rollback()
                    inserted = False
        finally:
            session.close()

        if inserted:
            logger.debug("news_item_saved", source=item.source, url=item.url[:50])
        else:
            logger.debug("news_item_duplicate", source=item.source, hash=item.hash)
        return inserted

    def query_news(self, filters: NewsFilters = None) -> NewsPage:
        """Filtered, paginated news, newest first."""
        filters = filters or NewsFilters()
        page = max(1, filters.page or 1)
        limit = max(1, filters.limit or settings.default_page_size)

        session = self.Session()
        try:
            query = session.query(ExternalNewsModel)

            if filters.region:
                query = query.filter(ExternalNewsModel.region == filters.region.value)
            if filters.category:
                query = query.filter(ExternalNewsModel.category == filters.category)
            if filters.search:
                query = query.filter(or_(
                    ExternalNewsModel.title.icontains(filters.search, autoescape=True),
                    ExternalNewsModel.summary.icontains(filters.search, autoescape=True),
                ))

            total = query.count()
            models = query\
                .order_by(ExternalNewsModel.published_at.desc(), ExternalNewsModel.id.desc())\
                .offset((page - 1) * limit)\
                .limit(limit)\
                .all()

            return NewsPage(
                news=[self._model_to_item(m) for m in models],
                total=total,
                page=page,
                total_pages=math.ceil(total / limit),
            )
        finally:
            session.close()

    def get_news_by_id(self, news_id: int) -> Optional[ExternalNewsItem]:
        """Get a single news item."""
        session = self.Session()
        try:
            model = session.get(ExternalNewsModel, news_id)
            return self._model_to_item(model) if model else None
        finally:
            session.close()

    def delete_news(self, news_id: int) -> bool:
        """Delete a single news item."""
        session = self.Session()
        try:
            deleted = session.query(ExternalNewsModel)\
                .filter(ExternalNewsModel.id == news_id)\
                .delete()
            session.commit()
            return deleted > 0
        finally:
            session.close()

    def cleanup_old_news(self, days_to_keep: int = None) -> int:
        """Delete news published more than days_to_keep days ago."""
        if days_to_keep is None:
            days_to_keep = settings.retention_days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_to_keep)

        session = self.Session()
        try:
            deleted = session.query(ExternalNewsModel)\
                .filter(ExternalNewsModel.published_at < cutoff)\
                .delete(synchronize_session=False)
            session.commit()
        finally:
            session.close()

        logger.info("old_news_cleaned", deleted=deleted, days_to_keep=days_to_keep)
        return deleted

    def get_stats(self) -> dict:
        """Get news and source statistics."""
        # Midnight in the server's local time
        today = datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)

        session = self.Session()
        try:
            def count_news(*criteria):
                return session.query(func.count(ExternalNewsModel.id)).filter(*criteria).scalar()

            return {
                "total": count_news(),
                "ghana": count_news(ExternalNewsModel.region == Region.GHANA.value),
                "world": count_news(ExternalNewsModel.region == Region.WORLD.value),
                "today": count_news(ExternalNewsModel.published_at >= _as_utc(today)),
                "sources": session.query(NewsSourceModel).count(),
                "activeSources": session.query(NewsSourceModel)
                    .filter(NewsSourceModel.is_active == True).count(),
            }
        finally:
            session.close()

    # ----- sources -----

    def list_sources(self) -> List[NewsSource]:
        """All sources, ordered by region then name."""
        session = self.Session()
        try:
            models = session.query(NewsSourceModel)\
                .order_by(NewsSourceModel.region, NewsSourceModel.name)\
                .all()
            return [self._model_to_source(m) for m in models]
        finally:
            session.close()

    def get_active_sources(self) -> List[NewsSource]:
        """Sources flagged active."""
        session = self.Session()
        try:
            models = session.query(NewsSourceModel)\
                .filter(NewsSourceModel.is_active == True)\
                .order_by(NewsSourceModel.id)\
                .all()
            return [self._model_to_source(m) for m in models]
        finally:
            session.close()

    def get_source(self, source_id: int) -> Optional[NewsSource]:
        session = self.Session()
        try:
            model = session.get(NewsSourceModel, source_id)
            return self._model_to_source(model) if model else None
        finally:
            session.close()

    def get_source_by_name(self, name: str) -> Optional[NewsSource]:
        session = self.Session()
        try:
            model = session.query(NewsSourceModel)\
                .filter(NewsSourceModel.name == name)\
                .first()
            return self._model_to_source(model) if model else None
        finally:
            session.close()

    def create_source(
        self,
        name: str,
        url: str,
        type: str = "rss",
        region: str = "world",
        category: str = None,
        is_active: bool = True,
        fetch_interval: int = 60,
    ) -> NewsSource:
        """Create a source. Raises ValueError on bad type/region or duplicate name."""
        name = (name or "").strip()
        url = (url or "").strip()
        if not name or not url:
            raise ValueError("Source name and URL are required")

        model = NewsSourceModel(
            name=name,
            url=url,
            type=SourceType(type).value,
            region=Region(region).value,
            category=category or "general",
            is_active=is_active,
            fetch_interval=fetch_interval,
        )

        session = self.Session()
        try:
            session.add(model)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValueError(f"Source with name already exists: {name}")
            source = self._model_to_source(model)
        finally:
            session.close()

        logger.info("source_created", name=name, url=url)
        return source

    def update_source(self, source_id: int, **updates) -> Optional[NewsSource]:
        """Apply whitelisted field updates. None if the source does not exist."""
        session = self.Session()
        try:
            model = session.get(NewsSourceModel, source_id)
            if not model:
                return None

            for key, value in updates.items():
                if key not in SOURCE_UPDATE_FIELDS or value is None:
                    continue
                if key == "type":
                    value = SourceType(value).value
                elif key == "region":
                    value = Region(value).value
                setattr(model, key, value)

            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValueError(f"Source with name already exists: {updates.get('name')}")

            source = self._model_to_source(model)
        finally:
            session.close()

        logger.info("source_updated", id=source_id, updates=sorted(updates))
        return source

    def delete_source(self, source_id: int) -> bool:
        session = self.Session()
        try:
            deleted = session.query(NewsSourceModel)\
                .filter(NewsSourceModel.id == source_id)\
                .delete()
            session.commit()
        finally:
            session.close()

        if deleted:
            logger.info("source_deleted", id=source_id)
        return deleted > 0

    def upsert_source_by_name(self, **fields) -> Tuple[NewsSource, bool]:
        """Create a source or overwrite the one with the same name. Returns (source, created)."""
        existing = self.get_source_by_name(fields["name"])
        if existing is None:
            return self.create_source(**fields), True
        return self.update_source(existing.id, **fields), False

    def mark_source_fetched(self, source_id: int, error: Optional[str] = None) -> None:
        """Record a fetch attempt: last_fetched is always bumped, last_error set or cleared."""
        session = self.Session()
        try:
            model = session.get(NewsSourceModel, source_id)
            if model:
                model.last_fetched = datetime.now(timezone.utc)
                model.last_error = error
                session.commit()
                logger.debug("source_fetch_recorded", id=source_id, error=error)
        finally:
            session.close()

    # ----- conversion -----

    def _model_to_item(self, model: ExternalNewsModel) -> ExternalNewsItem:
        """Convert database model to ExternalNewsItem."""
        return ExternalNewsItem(
            id=model.id,
            title=model.title,
            source=model.source,
            source_url=model.source_url,
            url=model.url,
            summary=model.summary,
            image_url=model.image_url,
            published_at=_as_utc(model.published_at),
            region=Region(model.region),
            category=model.category,
            hash=model.hash,
            created_at=_as_utc(model.created_at),
        )

    def _model_to_source(self, model: NewsSourceModel) -> NewsSource:
        """Convert database model to NewsSource."""
        return NewsSource(
            id=model.id,
            name=model.name,
            url=model.url,
            type=SourceType(model.type),
            region=Region(model.region),
            category=model.category,
            is_active=model.is_active,
            fetch_interval=model.fetch_interval,
            last_fetched=_as_utc(model.last_fetched),
            last_error=model.last_error,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )
