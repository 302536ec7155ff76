"""FastAPI application: gold news JSON API, admin source API and pages."""

from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.sessions import SessionMiddleware
import structlog

from ..config.settings import settings
from ..config.source_manager import SourceManager
from ..ingestion.interfaces import NewsFilters, Region
from ..pipeline.aggregator import NewsAggregator
from ..storage.database import NewsStorage
from ..storage.factory import get_storage
from . import auth, pages

logger = structlog.get_logger()

app = FastAPI(title="ARL Connect Gold News")
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret.get_secret_value(),
    session_cookie="arl_session",
    max_age=settings.session_max_age_seconds,
    same_site="lax",
)
app.include_router(pages.router)


class SourceCreate(BaseModel):
    """Body for creating a news source."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    type: Literal["rss", "api"] = "rss"
    region: Literal["ghana", "world"]
    category: Optional[str] = None
    fetch_interval: int = Field(60, alias="fetchInterval", ge=1)


class SourceUpdate(BaseModel):
    """Body for updating a news source. Omitted fields are left alone."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    url: Optional[str] = None
    type: Optional[Literal["rss", "api"]] = None
    region: Optional[Literal["ghana", "world"]] = None
    category: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
    fetch_interval: Optional[int] = Field(None, alias="fetchInterval", ge=1)


class FeedUrl(BaseModel):
    url: str


# ===== HEALTH CHECK ENDPOINT =====
@app.get("/health")
async def health_check(storage: NewsStorage = Depends(get_storage)):
    """Health check endpoint for load balancers."""
    try:
        stats = storage.get_stats()
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected",
            "articles": stats.get("total", 0),
        }
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )


# ===== GOLD NEWS API =====
@app.get("/api/gold-news")
async def list_gold_news(
    region: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(None),
    stats: Optional[str] = Query(None),
    storage: NewsStorage = Depends(get_storage),
):
    """Paginated news, or aggregate counts with stats=true."""
    if stats == "true":
        return storage.get_stats()

    try:
        region_filter = Region(region) if region else None
    except ValueError:
        return JSONResponse(status_code=400, content={"error": f"Invalid region: {region}"})

    limit = limit or settings.default_page_size
    result = storage.query_news(NewsFilters(
        region=region_filter,
        category=category or None,
        search=search or None,
        page=page,
        limit=max(1, min(limit, settings.max_page_size)),
    ))

    return {
        "news": [item.to_dict() for item in result.news],
        "total": result.total,
        "page": result.page,
        "totalPages": result.total_pages,
    }


@app.post("/api/gold-news")
async def gold_news_action(
    intent: str = Form(""),
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    """Manual fetch. Always 200 once started; per-source failures are in errors."""
    if intent == "fetch":
        logger.info("manual_fetch_requested", user=user)
        summary = await NewsAggregator(storage=storage).fetch_all()
        return {
            "success": True,
            "message": f"Fetched {summary.total} new articles",
            "errors": summary.errors,
        }

    return JSONResponse(status_code=400, content={"error": "Invalid intent"})


@app.post("/api/gold-news/cleanup")
async def cleanup_gold_news(
    days: int = Query(None, ge=1),
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    """Delete news older than the retention window."""
    deleted = storage.cleanup_old_news(days or settings.retention_days)
    return {"success": True, "deleted": deleted}


@app.get("/api/gold-news/{news_id}")
async def get_gold_news(news_id: int, storage: NewsStorage = Depends(get_storage)):
    item = storage.get_news_by_id(news_id)
    if not item:
        raise HTTPException(status_code=404, detail="News item not found")
    return item.to_dict()


@app.delete("/api/gold-news/{news_id}")
async def delete_gold_news(
    news_id: int,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    if not storage.delete_news(news_id):
        raise HTTPException(status_code=404, detail="News item not found")
    return {"success": True}


# ===== NEWS SOURCES API (admin) =====
@app.get("/api/news-sources")
async def list_sources(
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    return {
        "sources": [s.to_dict() for s in SourceManager(storage).list_sources()],
        "stats": storage.get_stats(),
    }


@app.post("/api/news-sources", status_code=201)
async def create_source(
    body: SourceCreate,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    try:
        source = SourceManager(storage).add_source(
            name=body.name,
            url=body.url,
            type=body.type,
            region=body.region,
            category=body.category,
        )
        if body.fetch_interval != source.fetch_interval:
            source = storage.update_source(source.id, fetch_interval=body.fetch_interval)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    return {"success": True, "message": "News source added", "source": source.to_dict()}


@app.post("/api/news-sources/validate")
async def validate_source_url(
    body: FeedUrl,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    return await SourceManager(storage).validate_feed_url(body.url)


@app.patch("/api/news-sources/{source_id}")
async def update_source(
    source_id: int,
    body: SourceUpdate,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    try:
        source = SourceManager(storage).update_source(source_id, **body.model_dump(exclude_none=True))
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    if source is None:
        raise HTTPException(status_code=404, detail="News source not found")
    return {"success": True, "message": "News source updated", "source": source.to_dict()}


@app.delete("/api/news-sources/{source_id}")
async def delete_source(
    source_id: int,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    if not SourceManager(storage).delete_source(source_id):
        raise HTTPException(status_code=404, detail="News source not found")
    return {"success": True, "message": "News source deleted"}


@app.post("/api/news-sources/{source_id}/fetch")
async def fetch_source(
    source_id: int,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    """Fetch a single source now. Failures are reported, not raised."""
    source = storage.get_source(source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="News source not found")

    try:
        count = await NewsAggregator(storage=storage).ingest_source(source)
    except Exception as e:
        logger.warning("manual_source_fetch_failed", source=source.name, error=str(e))
        return {"success": False, "message": f"{source.name}: {e}", "new": 0}
    return {"success": True, "message": f"Fetched {count} new articles", "new": count}
