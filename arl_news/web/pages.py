"""Server-rendered pages: public news list and admin source management."""

import html
import urllib.parse
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
import structlog

from ..config.settings import settings
from ..ingestion.interfaces import NewsFilters, Region
from ..pipeline.aggregator import NewsAggregator
from ..storage.database import NewsStorage
from ..storage.factory import get_storage
from . import auth

logger = structlog.get_logger()

router = APIRouter()

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>ARL Connect{title_suffix}</title>
    <style>
        :root {{
            --primary: #b8860b;
            --primary-dark: #8b6508;
            --success: #16a34a;
            --warning: #d97706;
            --danger: #dc2626;
            --gray-100: #f3f4f6;
            --gray-300: #d1d5db;
            --gray-500: #6b7280;
            --gray-700: #374151;
        }}
        body {{ font-family: -apple-system, BlinkMacSystemFont, sans-serif; margin: 0; background: var(--gray-100); color: var(--gray-700); }}
        .header {{ background: white; border-bottom: 1px solid var(--gray-300); padding: 12px 24px; }}
        .header a {{ margin-right: 16px; }}
        .header a.active {{ font-weight: 600; }}
        .logo {{ font-weight: 700; color: var(--primary-dark); }}
        .container {{ max-width: 1100px; margin: 24px auto; padding: 0 24px; }}
        .card {{ background: white; border: 1px solid var(--gray-300); border-radius: 8px; margin-bottom: 16px; }}
        .card-header {{ padding: 12px 16px; border-bottom: 1px solid var(--gray-300); font-weight: 600; }}
        .card-body {{ padding: 16px; }}
        .stats {{ display: flex; gap: 16px; margin-bottom: 24px; }}
        .stat {{ flex: 1; background: white; border: 1px solid var(--gray-300); border-radius: 8px; padding: 12px 16px; }}
        .stat p {{ margin: 0; font-size: 0.75em; color: var(--gray-500); }}
        .stat strong {{ font-size: 1.5em; }}
        .tabs a {{ margin-right: 12px; }}
        .tabs a.active {{ font-weight: 600; text-decoration: underline; }}
        .meta {{ font-size: 0.8em; color: var(--gray-500); }}
        .news-image {{ float: right; max-width: 160px; max-height: 100px; margin-left: 12px; border-radius: 4px; }}
        .error {{ color: var(--danger); }}
        .notice {{ background: white; border-left: 4px solid var(--primary); padding: 12px 16px; margin-bottom: 16px; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ text-align: left; padding: 8px 12px; border-bottom: 1px solid var(--gray-100); vertical-align: top; }}
        a {{ color: var(--primary); text-decoration: none; }}
        a:hover {{ text-decoration: underline; }}
        .btn {{ display: inline-block; padding: 6px 12px; border-radius: 6px; border: 1px solid var(--gray-300); background: var(--gray-100); cursor: pointer; }}
        .btn-primary {{ background: var(--primary); color: white; border: none; }}
        .footer {{ font-size: 0.8em; color: var(--gray-500); margin-top: 24px; }}
    </style>
</head>
<body>
    <div class="header">
        <a href="/gold-news" class="logo">ARL Connect</a>
        <a href="/gold-news" class="{nav_news}">Gold Industry News</a>
        <a href="/admin/news-sources" class="{nav_sources}">News Sources</a>
    </div>
    <div class="container">
        {content}
    </div>
</body>
</html>
"""


def render(content: str, active: str = "", title_suffix: str = "") -> str:
    """Render HTML with navigation highlighting."""
    return HTML_TEMPLATE.format(
        content=content,
        title_suffix=f" - {title_suffix}" if title_suffix else "",
        nav_news='active' if active == 'news' else '',
        nav_sources='active' if active == 'sources' else '',
    )


def format_time_ago(dt) -> str:
    """Format datetime as human-readable 'time ago'."""
    if not dt:
        return "Never"
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    diff = datetime.now(timezone.utc) - dt
    # Feeds sometimes carry future-dated items
    if diff.total_seconds() < 60:
        return "Just now"
    if diff.days > 0:
        return f"{diff.days}d ago"
    hours = diff.seconds // 3600
    if hours > 0:
        return f"{hours}h ago"
    minutes = diff.seconds // 60
    return f"{minutes}m ago" if minutes > 0 else "Just now"


def _safe_url(url: Optional[str]) -> Optional[str]:
    """Return url if it is http(s), else None. Feed URLs are stored unvalidated."""
    if not url:
        return None
    scheme = urllib.parse.urlsplit(url.strip()).scheme.lower()
    return url.strip() if scheme in ("http", "https") else None


def _page_link(region: Optional[str], search: Optional[str], page: int) -> str:
    params = {k: v for k, v in (("region", region), ("search", search)) if v}
    if page > 1:
        params["page"] = page
    query = urllib.parse.urlencode(params)
    return f"/gold-news?{query}" if query else "/gold-news"


@router.get("/gold-news", response_class=HTMLResponse)
async def gold_news_page(
    region: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    storage: NewsStorage = Depends(get_storage),
):
    """Public gold industry news list."""
    try:
        region_filter = Region(region) if region else None
    except ValueError:
        region, region_filter = None, None

    result = storage.query_news(NewsFilters(
        region=region_filter,
        search=search or None,
        page=page,
        limit=settings.page_size_html,
    ))
    stats = storage.get_stats()
    region_input = (
        f'<input type="hidden" name="region" value="{html.escape(region)}">' if region else ''
    )

    content = f"""
    <h1>Gold Industry News</h1>
    <p class="meta">Stay updated with mining news from Ghana and around the world</p>

    <div class="stats">
        <div class="stat"><strong>{stats['total']}</strong><p>Total Articles</p></div>
        <div class="stat"><strong>{stats['ghana']}</strong><p>Ghana News</p></div>
        <div class="stat"><strong>{stats['world']}</strong><p>World News</p></div>
        <div class="stat"><strong>{stats['today']}</strong><p>Today</p></div>
    </div>

    <div class="tabs">
        <a href="{_page_link(None, search, 1)}" class="{'active' if not region else ''}">All</a>
        <a href="{_page_link('ghana', search, 1)}" class="{'active' if region == 'ghana' else ''}">Ghana</a>
        <a href="{_page_link('world', search, 1)}" class="{'active' if region == 'world' else ''}">World</a>
        <form method="get" action="/gold-news" style="display: inline; float: right;">
            {region_input}
            <input type="text" name="search" placeholder="Search news..." value="{html.escape(search or '')}">
        </form>
    </div>
    <br>
    """

    for item in result.news:
        image_url = _safe_url(item.image_url)
        image = (
            f'<img class="news-image" src="{html.escape(image_url)}" alt="">'
            if image_url else ''
        )
        item_url = _safe_url(item.url)
        headline = f'<strong>{html.escape(item.title)}</strong>'
        if item_url:
            headline = f'<a href="{html.escape(item_url)}" target="_blank" rel="noopener">{headline}</a>'
        content += f"""
        <div class="card">
            <div class="card-body">
                {image}
                {headline}
                <p>{html.escape(item.summary or '')}</p>
                <p class="meta">{html.escape(item.source)} &bull; {format_time_ago(item.published_at)} &bull; {item.region.value.title()}</p>
            </div>
        </div>
        """

    if not result.news:
        content += '<div class="card"><div class="card-body">No news articles found</div></div>'

    if result.total_pages > 1:
        content += '<p>'
        if result.page > 1:
            content += f'<a href="{html.escape(_page_link(region, search, result.page - 1))}">&laquo; Previous</a> '
        content += f' Page {result.page} of {result.total_pages} '
        if result.page < result.total_pages:
            content += f'<a href="{html.escape(_page_link(region, search, result.page + 1))}">Next &raquo;</a>'
        content += '</p>'

    content += """
    <p class="footer">News is aggregated from various mining industry sources and refreshed automatically.</p>
    """
    return render(content, active='news', title_suffix='Gold Industry News')


@router.get("/admin/login", response_class=HTMLResponse)
async def login_form(error: Optional[str] = Query(None)):
    message = '<p class="error">Invalid username or password</p>' if error else ''
    content = f"""
    <h1>Admin Login</h1>
    {message}
    <div class="card"><div class="card-body">
        <form method="post" action="/admin/login">
            <p><input type="text" name="username" placeholder="Username" required></p>
            <p><input type="password" name="password" placeholder="Password" required></p>
            <button type="submit" class="btn btn-primary">Sign in</button>
        </form>
    </div></div>
    """
    return render(content, title_suffix='Login')


@router.post("/admin/login")
async def login_submit(request: Request, username: str = Form(...), password: str = Form(...)):
    if not auth.login(request, username, password):
        return RedirectResponse("/admin/login?error=1", status_code=303)
    return RedirectResponse("/admin/news-sources", status_code=303)


@router.post("/admin/logout")
async def logout_submit(request: Request):
    auth.logout(request)
    return RedirectResponse("/admin/login", status_code=303)


def _select(name: str, values, selected: str) -> str:
    options = "".join(
        f'<option value="{v}"{" selected" if v == selected else ""}>{v.title()}</option>'
        for v in values
    )
    return f'<select name="{name}">{options}</select>'


def _edit_form(source) -> str:
    """Collapsible inline form posting to the source update action."""
    return f"""
    <details>
        <summary class="meta">Edit</summary>
        <form method="post" action="/admin/news-sources/{source.id}/update">
            <input type="text" name="name" value="{html.escape(source.name)}" required>
            <input type="url" name="url" value="{html.escape(source.url)}" required>
            {_select("type", ("rss", "api"), source.type.value)}
            {_select("region", ("ghana", "world"), source.region.value)}
            <input type="text" name="category" value="{html.escape(source.category or '')}" placeholder="Category">
            <input type="number" name="fetch_interval" value="{source.fetch_interval}" min="1" title="Minutes">
            <button type="submit" class="btn btn-primary">Save</button>
        </form>
    </details>
    """


def _redirect_sources(message: str) -> RedirectResponse:
    return RedirectResponse(
        "/admin/news-sources?" + urllib.parse.urlencode({"message": message}),
        status_code=303,
    )


@router.get("/admin/news-sources", response_class=HTMLResponse)
async def sources_page(
    request: Request,
    message: Optional[str] = Query(None),
    storage: NewsStorage = Depends(get_storage),
):
    """Admin view of sources with their last fetch and last error."""
    if not auth.current_user(request):
        return RedirectResponse("/admin/login", status_code=303)

    sources = storage.list_sources()
    stats = storage.get_stats()
    active = sum(1 for s in sources if s.is_active)

    notice = f'<div class="notice">{html.escape(message)}</div>' if message else ''
    content = f"""
    <h1>News Sources</h1>
    {notice}
    <p class="meta">
        {len(sources)} sources configured &bull; {active} active &bull; {stats['total']} articles stored
    </p>
    <form method="post" action="/admin/news-sources/fetch-all" style="display: inline;">
        <button type="submit" class="btn btn-primary">Fetch All Now</button>
    </form>
    <form method="post" action="/admin/logout" style="display: inline; float: right;">
        <button type="submit" class="btn">Log out</button>
    </form>

    <div class="card" style="margin-top: 16px;">
        <div class="card-header">Sources</div>
        <table>
            <tr>
                <th>Name</th>
                <th>Region</th>
                <th>Category</th>
                <th>Last Fetch</th>
                <th>Status</th>
                <th>Actions</th>
            </tr>
    """

    for source in sources:
        if not source.is_active:
            status = '<span class="meta">Disabled</span>'
        elif source.last_error:
            status = f'<span class="error">{html.escape(source.last_error)}</span>'
        else:
            status = '<span style="color: var(--success);">OK</span>'

        feed_url = _safe_url(source.url)
        if feed_url:
            feed_link = f'<a href="{html.escape(feed_url)}" target="_blank" class="meta">{html.escape(source.url[:60])}</a>'
        else:
            feed_link = f'<span class="meta">{html.escape(source.url[:60])}</span>'

        content += f"""
            <tr>
                <td>
                    <strong>{html.escape(source.name)}</strong>
                    <br>{feed_link}
                    {_edit_form(source)}
                </td>
                <td>{source.region.value.title()}</td>
                <td>{html.escape(source.category or 'general')}</td>
                <td>{format_time_ago(source.last_fetched)}</td>
                <td>{status}</td>
                <td>
                    <form method="post" action="/admin/news-sources/{source.id}/toggle" style="display: inline;">
                        <button type="submit" class="btn">{'Disable' if source.is_active else 'Enable'}</button>
                    </form>
                    <form method="post" action="/admin/news-sources/{source.id}/delete" style="display: inline;"
                          onsubmit="return confirm('Delete this source?');">
                        <button type="submit" class="btn error">&times;</button>
                    </form>
                </td>
            </tr>
        """

    if not sources:
        content += '<tr><td colspan="6">No sources configured</td></tr>'

    content += """
        </table>
    </div>

    <div class="card">
        <div class="card-header">Add Source</div>
        <div class="card-body">
            <form method="post" action="/admin/news-sources/add">
                <input type="text" name="name" placeholder="Name" required>
                <input type="url" name="url" placeholder="Feed URL" required>
                <select name="type"><option value="rss">RSS</option><option value="api">API</option></select>
                <select name="region"><option value="ghana">Ghana</option><option value="world">World</option></select>
                <input type="text" name="category" placeholder="Category">
                <button type="submit" class="btn btn-primary">Add</button>
            </form>
        </div>
    </div>
    """
    return render(content, active='sources', title_suffix='News Sources')


@router.post("/admin/news-sources/add")
async def sources_add(
    name: str = Form(...),
    url: str = Form(...),
    type: str = Form("rss"),
    region: str = Form("world"),
    category: str = Form(""),
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    try:
        storage.create_source(name=name, url=url, type=type, region=region, category=category or None)
    except ValueError as e:
        return _redirect_sources(str(e))
    return _redirect_sources("News source added")


@router.post("/admin/news-sources/{source_id}/update")
async def sources_update(
    source_id: int,
    name: str = Form(...),
    url: str = Form(...),
    type: str = Form("rss"),
    region: str = Form("world"),
    category: str = Form(""),
    fetch_interval: int = Form(None, ge=1),
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    if not name.strip() or not url.strip():
        return _redirect_sources("Source name and URL are required")
    try:
        source = storage.update_source(
            source_id,
            name=name.strip(),
            url=url.strip(),
            type=type,
            region=region,
            category=category.strip() or "general",
            fetch_interval=fetch_interval,
        )
    except ValueError as e:
        return _redirect_sources(str(e))
    if source is None:
        return _redirect_sources("News source not found")
    return _redirect_sources("News source updated")


@router.post("/admin/news-sources/{source_id}/toggle")
async def sources_toggle(
    source_id: int,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    source = storage.get_source(source_id)
    if source:
        storage.update_source(source_id, is_active=not source.is_active)
    return RedirectResponse("/admin/news-sources", status_code=303)


@router.post("/admin/news-sources/{source_id}/delete")
async def sources_delete(
    source_id: int,
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    storage.delete_source(source_id)
    return _redirect_sources("News source deleted")


@router.post("/admin/news-sources/fetch-all")
async def sources_fetch_all(
    user: str = Depends(auth.require_admin),
    storage: NewsStorage = Depends(get_storage),
):
    logger.info("manual_fetch_requested", user=user)
    summary = await NewsAggregator(storage=storage).fetch_all()
    message = f"Fetched {summary.total} new articles"
    if summary.errors:
        message += f" ({len(summary.errors)} sources failed)"
    return _redirect_sources(message)
