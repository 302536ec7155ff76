"""Regex field extractors for loosely structured feed XML.

Feeds in the wild are frequently not well-formed, so these helpers pull a
known set of fields out of raw text instead of building a DOM. Everything the
parser knows about XML syntax lives here.
"""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Optional

_HTML_TAG_RE = re.compile(r"<[^>]*>")

# &amp; goes last so "&amp;lt;" decodes to "&lt;", not "<"
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&#8217;", "'"),
    ("&#8220;", '"'),
    ("&#8221;", '"'),
    ("&amp;", "&"),
)


@lru_cache(maxsize=64)
def _tag_pattern(tag: str) -> re.Pattern:
    name = re.escape(tag)
    opening = rf"<{name}(?:\s[^>]*?)?(?<!/)>"
    return re.compile(
        rf"{opening}\s*<!\[CDATA\[(.*?)\]\]>\s*</{name}\s*>"
        rf"|{opening}(.*?)</{name}\s*>",
        re.IGNORECASE | re.DOTALL,
    )


@lru_cache(maxsize=64)
def _attribute_pattern(tag: str, attr: str) -> re.Pattern:
    return re.compile(
        rf"<{re.escape(tag)}(?=[\s/>])[^>]*?\s{re.escape(attr)}\s*=\s*([\"'])(.*?)\1",
        re.IGNORECASE | re.DOTALL,
    )


def extract_tag(xml: str, tag: str) -> Optional[str]:
    """Return the content of the first <tag> element in xml.

    CDATA payload wins over plain text. Returns None when the tag is absent
    and "" when it is present but empty.
    """
    match = _tag_pattern(tag).search(xml)
    if not match:
        return None
    cdata, text = match.group(1), match.group(2)
    return (cdata if cdata is not None else text or "").strip()


def extract_attribute(xml: str, tag: str, attr: str) -> Optional[str]:
    """Return attr from the first <tag> that carries it, in any attribute order."""
    match = _attribute_pattern(tag, attr).search(xml)
    return match.group(2) if match else None


def clean_html(text: Optional[str]) -> str:
    """Strip markup, decode the common named entities and trim."""
    if not text:
        return ""
    text = _HTML_TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.strip()


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 or ISO 8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    value = value.strip()

    for attempt in (
        parsedate_to_datetime,
        lambda v: datetime.fromisoformat(v.replace("Z", "+00:00")),
    ):
        try:
            dt = attempt(value)
        except (TypeError, ValueError, IndexError):
            continue
        if dt is None:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    return None
