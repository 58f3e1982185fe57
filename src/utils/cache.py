"""
Report Result Cache with TTL
============================

A simple, thread-safe in-memory cache for assembled report results.

Features:
- Configurable TTL (default 5 minutes)
- Thread-safe operations
- Automatic expiration
- Key generation from report parameters

Usage:
    from utils.cache import get_query_cache, generate_cache_key

    cache = get_query_cache()
    cache_key = generate_cache_key("report", report_type="inkomsten", grouping="per_month")

    result = cache.get_or_compute(
        key=cache_key,
        compute_fn=lambda: expensive_database_query()
    )

The cache tables are rebuilt on demand, so every successful lifecycle action
calls invalidate() to drop results computed from the previous contents.
"""

import time
import hashlib
from typing import Any, Callable, Optional, TypeVar
from threading import Lock

from utils.config import REPORT_RESULT_CACHE_TTL_SECONDS

T = TypeVar('T')


class QueryCache:
    """
    Thread-safe in-memory cache with configurable TTL.

    Attributes:
        _cache: Dictionary storing (value, timestamp) tuples
        _lock: Threading lock for thread safety
        _ttl: Time-to-live in seconds
    """

    def __init__(self, ttl_seconds: int = 300):
        self._cache: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()
        self._ttl = ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if valid.

        Args:
            key: Cache key

        Returns:
            Cached value if valid, None otherwise
        """
        with self._lock:
            if key in self._cache:
                value, timestamp = self._cache[key]
                if time.time() - timestamp < self._ttl:
                    return value
                del self._cache[key]
        return None

    def set(self, key: str, value: Any) -> None:
        """Store value in cache."""
        with self._lock:
            self._cache[key] = (value, time.time())

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """
        Get cached value or compute and cache new value.

        The value is computed outside the lock so a slow report query does
        not block other threads. None results are never cached.

        Args:
            key: Cache key
            compute_fn: Function to compute value if not cached

        Returns:
            Cached or computed value
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        result = compute_fn()
        if result is not None:
            self.set(key, result)

        return result

    def invalidate(self, key: Optional[str] = None) -> None:
        """
        Clear cache entry or all entries.

        Args:
            key: Specific key to invalidate, or None to clear all
        """
        with self._lock:
            if key is not None:
                self._cache.pop(key, None)
            else:
                self._cache.clear()

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics for monitoring."""
        with self._lock:
            now = time.time()
            valid_entries = sum(
                1 for _, (_, ts) in self._cache.items()
                if now - ts < self._ttl
            )
            return {
                "total_entries": len(self._cache),
                "valid_entries": valid_entries,
                "ttl_seconds": self._ttl
            }


def generate_cache_key(endpoint: str, **params) -> str:
    """
    Generate consistent cache key from endpoint and parameters.

    Keys are deterministic - same inputs always produce same key.
    Parameter order doesn't matter (sorted before hashing).

    Example:
        >>> generate_cache_key("report", report_type="inkomsten", grouping="per_month")
        'report:5c2b8f0e'
    """
    param_str = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
    # MD5 for compact keys, not for security
    hash_value = hashlib.md5(param_str.encode()).hexdigest()[:8]
    return f"{endpoint}:{hash_value}"


_query_cache: Optional[QueryCache] = None
_cache_lock = Lock()


def get_query_cache() -> QueryCache:
    """
    Get the global query cache singleton.

    Returns:
        Global QueryCache instance
    """
    global _query_cache
    if _query_cache is None:
        with _cache_lock:
            if _query_cache is None:
                _query_cache = QueryCache(ttl_seconds=REPORT_RESULT_CACHE_TTL_SECONDS)
    return _query_cache


def reset_query_cache() -> None:
    """Reset the global cache (useful for testing)."""
    global _query_cache
    with _cache_lock:
        _query_cache = QueryCache(ttl_seconds=REPORT_RESULT_CACHE_TTL_SECONDS)
