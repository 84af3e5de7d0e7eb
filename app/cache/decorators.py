"""
cache/decorators.py — Result caching decorator

Wraps get_cached/set_cached from store.py. Caches the return value of a
function by building a key from its keyword arguments.

Usage:
    @cached_endpoint(prefix="property_search", ttl_seconds=600)
    def search_properties(db, *, city=None, limit=20, offset=0):
        ...
"""

import functools
import hashlib
import json
import logging

from .store import get_cached, invalidate_prefix, set_cached

log = logging.getLogger("openhaus.cache")


def _cache_key(prefix: str, kwargs: dict, key_params: list[str] | None) -> str:
    excluded = {"db", "user", "request"}
    if key_params is not None:
        key_dict = {k: kwargs.get(k) for k in key_params}
    else:
        key_dict = {k: v for k, v in kwargs.items() if k not in excluded}

    # Deterministic key: sort dict and hash
    key_str = json.dumps(key_dict, sort_keys=True, default=str)
    key_hash = hashlib.md5(key_str.encode(), usedforsecurity=False).hexdigest()[:12]
    return f"{prefix}:{key_hash}"


def cached_endpoint(prefix: str, ttl_seconds: int = 3600, key_params: list[str] | None = None):
    """Decorator that caches a function's dict/list return value.

    Args:
        prefix: Cache key prefix (e.g. "property_search")
        ttl_seconds: Time-to-live
        key_params: List of kwarg names to include in the cache key.
                    If None, all kwargs are used (excluding db, user, request).
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = _cache_key(prefix, kwargs, key_params)

            cached = get_cached(cache_key)
            if cached is not None:
                log.debug("Cache HIT: %s", cache_key)
                return cached

            log.debug("Cache MISS: %s", cache_key)
            result = func(*args, **kwargs)

            # Only cache dict/list results (not Response objects)
            if isinstance(result, (dict, list)):
                set_cached(cache_key, result, ttl_seconds=ttl_seconds)

            return result

        # Expose cache prefix for invalidation
        wrapper.cache_prefix = prefix
        return wrapper

    return decorator


def invalidate_cached(func) -> None:
    """Invalidate all entries written by a @cached_endpoint function."""
    invalidate_prefix(f"{func.cache_prefix}:")
