"""Tests for cache utilities."""

from __future__ import annotations

from unittest.mock import patch

from gke_operator.utils.cache import (
    get_cached_object,
    invalidate_cache,
    make_cache_key,
    set_cached_object,
)


class TestCacheKey:
    """Test cases for make_cache_key function."""

    def test_make_cache_key(self):
        """Test making cache key."""
        assert make_cache_key("Provider", "default", "gcp") == "Provider:default:gcp"


class TestCache:
    """Test cases for the TTL cache."""

    def test_set_and_get(self):
        """Test that stored objects are returned."""
        set_cached_object("Provider:default:gcp", {"spec": {}})
        assert get_cached_object("Provider:default:gcp") == {"spec": {}}

    def test_missing(self):
        """Test that unknown keys return None."""
        assert get_cached_object("Provider:default:none") is None

    def test_expired(self):
        """Test that entries older than the TTL are dropped."""
        with patch("gke_operator.utils.cache.time.monotonic", return_value=100.0):
            set_cached_object("Provider:default:gcp", {"spec": {}})
        with patch("gke_operator.utils.cache.time.monotonic", return_value=200.0):
            assert get_cached_object("Provider:default:gcp") is None

    def test_invalidate_pattern(self):
        """Test that invalidation by pattern only drops matching keys."""
        set_cached_object("Provider:default:gcp", 1)
        set_cached_object("Provider:default:other", 2)

        invalidate_cache("Provider:default:gcp")

        assert get_cached_object("Provider:default:gcp") is None
        assert get_cached_object("Provider:default:other") == 2

    def test_invalidate_all(self):
        """Test that invalidation without a pattern clears everything."""
        set_cached_object("a", 1)
        invalidate_cache()
        assert get_cached_object("a") is None
