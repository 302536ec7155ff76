"""Unit tests for the dedup hash."""

import hashlib

from arl_news.ingestion.hashing import news_hash


class TestNewsHash:
    """Tests for news_hash."""

    def test_case_and_whitespace_insensitive(self):
        """Title and source differing only in case and padding should collide."""
        assert news_hash("Gold price rises", "Example Source") == \
            news_hash("gold price rises ", "EXAMPLE SOURCE")

    def test_md5_of_normalized_key(self):
        """Should be the hex MD5 of 'title|source' after normalization."""
        expected = hashlib.md5(b"gold price rises|example source").hexdigest()
        assert news_hash("  Gold Price Rises", "Example Source  ") == expected
        assert len(expected) == 32

    def test_different_source_differs(self):
        """The same headline from another source should not collide."""
        assert news_hash("Gold price rises", "Source A") != news_hash("Gold price rises", "Source B")

    def test_different_title_differs(self):
        assert news_hash("Gold price rises", "S") != news_hash("Gold price falls", "S")

    def test_internal_whitespace_kept(self):
        """Only leading and trailing whitespace is ignored."""
        assert news_hash("Gold  price", "S") != news_hash("Gold price", "S")
