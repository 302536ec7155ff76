"""Feed parser for RSS 2.0, RSS 1.0 and Atom documents."""

import re
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from .errors import FetchError, ParseError
from .extractors import extract_tag, extract_attribute, clean_html, parse_date
from .interfaces import RawFeedItem, FetcherInterface

logger = structlog.get_logger()

SUMMARY_MAX_LENGTH = 500

_RSS_ITEM_RE = re.compile(r"<item(?:\s[^>]*)?>(.*?)</item\s*>", re.IGNORECASE | re.DOTALL)
_ATOM_ENTRY_RE = re.compile(r"<entry(?:\s[^>]*)?>(.*?)</entry\s*>", re.IGNORECASE | re.DOTALL)

# Image candidates for RSS items, in priority order
_RSS_IMAGE_TAGS = ("enclosure", "media:content", "media:thumbnail")


class FeedParser:
    """Turns raw feed text into RawFeedItems.

    RSS <item> blocks are tried first; Atom <entry> blocks only when the
    document has no usable items.
    """

    def parse(self, xml: str) -> List[RawFeedItem]:
        if not isinstance(xml, str):
            raise ParseError(f"Expected feed text, got {type(xml).__name__}")

        try:
            items = self._parse_rss(xml)
            if not items:
                items = self._parse_atom(xml)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(f"Could not parse feed: {e}") from e

        return items

    def _parse_rss(self, xml: str) -> List[RawFeedItem]:
        items = []
        for match in _RSS_ITEM_RE.finditer(xml):
            block = match.group(1)

            image_url = None
            for tag in _RSS_IMAGE_TAGS:
                image_url = extract_attribute(block, tag, "url")
                if image_url:
                    break

            item = self._build_item(
                title=extract_tag(block, "title"),
                link=extract_tag(block, "link") or extract_tag(block, "guid"),
                summary=extract_tag(block, "description") or extract_tag(block, "content:encoded"),
                published=extract_tag(block, "pubDate") or extract_tag(block, "dc:date"),
                image_url=image_url,
            )
            if item:
                items.append(item)
        return items

    def _parse_atom(self, xml: str) -> List[RawFeedItem]:
        items = []
        for match in _ATOM_ENTRY_RE.finditer(xml):
            block = match.group(1)
            item = self._build_item(
                title=extract_tag(block, "title"),
                link=extract_attribute(block, "link", "href") or extract_tag(block, "link"),
                summary=extract_tag(block, "summary") or extract_tag(block, "content"),
                published=extract_tag(block, "published") or extract_tag(block, "updated"),
                image_url=None,
            )
            if item:
                items.append(item)
        return items

    def _build_item(
        self,
        title: Optional[str],
        link: Optional[str],
        summary: Optional[str],
        published: Optional[str],
        image_url: Optional[str],
    ) -> Optional[RawFeedItem]:
        """Normalize extracted fields. Items without title or link are dropped."""
        if not title or not link:
            return None

        title = clean_html(title)
        if not title:
            return None

        summary = clean_html(summary)[:SUMMARY_MAX_LENGTH]
        published_at = parse_date(published) or datetime.now(timezone.utc)

        return RawFeedItem(
            title=title,
            url=link.strip(),
            summary=summary or None,
            published_at=published_at,
            image_url=image_url or None,
        )


def parse_feed(xml: str) -> List[RawFeedItem]:
    """Parse feed text with a default FeedParser."""
    return FeedParser().parse(xml)


async def read_feed(fetcher: FetcherInterface, url: str) -> List[RawFeedItem]:
    """Fetch and parse url, returning [] instead of raising on failure."""
    try:
        xml = await fetcher.fetch(url)
        return parse_feed(xml)
    except (FetchError, ParseError) as e:
        logger.warning("feed_read_failed", url=url, error=str(e))
        return []
