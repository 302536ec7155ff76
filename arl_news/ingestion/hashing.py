"""Deduplication fingerprint for news items."""

import hashlib


def news_hash(title: str, source: str) -> str:
    """MD5 of the normalized title and source name.

    Only used for existence lookups. Summary, date and url do not take part,
    so the same headline from the same source always hashes the same.
    """
    key = f"{title.lower().strip()}|{source.lower().strip()}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()
