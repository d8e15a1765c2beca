"""TTL cache for Kubernetes API reads."""

from __future__ import annotations

import os
import threading
import time
from typing import Any

# key -> (object, stored_at)
_cache: dict[str, tuple[Any, float]] = {}
_lock = threading.Lock()


def _ttl() -> float:
    return float(os.getenv("K8S_CACHE_TTL_SECONDS", "30.0"))


def get_cached_object(key: str) -> Any | None:
    """Get an object from cache if it hasn't expired.

    Args:
        key: Cache key from make_cache_key

    Returns:
        Cached object or None if not found or expired
    """
    with _lock:
        entry = _cache.get(key)
        if entry is None:
            return None
        obj, stored_at = entry
        if time.monotonic() - stored_at > _ttl():
            del _cache[key]
            return None
        return obj


def set_cached_object(key: str, obj: Any) -> None:
    """Store an object in cache with the current timestamp."""
    with _lock:
        _cache[key] = (obj, time.monotonic())


def invalidate_cache(pattern: str | None = None) -> None:
    """Invalidate cache entries.

    Args:
        pattern: Substring to match keys against (if None, clears all)
    """
    with _lock:
        if pattern is None:
            _cache.clear()
            return
        for key in [k for k in _cache if pattern in k]:
            del _cache[key]


def make_cache_key(kind: str, namespace: str, name: str) -> str:
    """Create a cache key for a Kubernetes resource."""
    return f"{kind}:{namespace}:{name}"
