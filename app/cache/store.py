"""Key/value cache — Redis primary with in-process fallback.

Used for: search results (10 min), WOZ lookups (24 h), CBS datasets
(6–24 h), valuation results (30 min) and fixed-window rate-limit counters.

Redis is preferred so limits and cached data are shared across workers.
Falls back to a per-process dictionary if Redis is unavailable (e.g.,
during development without Docker) or when TESTING is set.
"""

import json
import logging
import os
import threading
import time

log = logging.getLogger("openhaus.cache")

# Lazy-initialized Redis client
_redis_client = None
_redis_init_attempted = False


def _now() -> float:
    return time.monotonic()


def _prefix() -> str:
    from app.config import settings

    return settings.cache_prefix


def _get_redis():
    """Lazy-init Redis connection. Returns client or None if unavailable."""
    global _redis_client, _redis_init_attempted

    if _redis_init_attempted:
        return _redis_client

    _redis_init_attempted = True

    if os.environ.get("TESTING"):
        return None

    try:
        from app.config import settings
        if settings.cache_backend != "redis":
            log.info("Cache backend set to %s — skipping Redis", settings.cache_backend)
            return None

        import redis
        _redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=2,
            retry_on_timeout=True,
        )
        _redis_client.ping()
        log.info("Redis cache connected: %s", settings.redis_url)
    except Exception as e:
        log.warning("Redis unavailable, falling back to in-memory cache: %s", e)
        _redis_client = None

    return _redis_client


class _MemoryStore:
    """Dictionary store with per-key expiry. Not shared across processes."""

    def __init__(self):
        self._data: dict[str, tuple[object, float | None]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and expires <= _now():
            del self._data[key]
            return None
        return entry

    def get(self, key: str):
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key: str, value, ttl: int | None) -> None:
        with self._lock:
            self._data[key] = (value, _now() + ttl if ttl else None)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self._data[key] = (1, None)
                return 1
            value, expires = entry
            self._data[key] = (int(value) + 1, expires)
            return int(value) + 1

    def expire(self, key: str, ttl: int) -> None:
        with self._lock:
            entry = self._live(key)
            if entry is not None:
                self._data[key] = (entry[0], _now() + ttl)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._data if k.startswith(prefix)]
            for k in keys:
                del self._data[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


_memory = _MemoryStore()


def get_cached(cache_key: str):
    """Retrieve a cached JSON value. Returns None on miss or error."""
    key = f"{_prefix()}{cache_key}"
    r = _get_redis()
    if r:
        try:
            data = r.get(key)
            return json.loads(data) if data else None
        except Exception as e:
            log.debug("Redis read error for %s: %s", cache_key, e)
            return None
    return _memory.get(key)


def set_cached(cache_key: str, data, ttl_seconds: int = 3600) -> None:
    """Store a JSON-serializable value with TTL."""
    key = f"{_prefix()}{cache_key}"
    r = _get_redis()
    if r:
        try:
            r.setex(key, ttl_seconds, json.dumps(data, default=str))
            return
        except Exception as e:
            log.warning("Redis write error for %s: %s", cache_key, e)
            return
    # Round-trip through JSON so memory and Redis hand back the same shapes
    _memory.set(key, json.loads(json.dumps(data, default=str)), ttl_seconds)


def invalidate(cache_key: str) -> None:
    """Delete a specific cache entry."""
    key = f"{_prefix()}{cache_key}"
    r = _get_redis()
    if r:
        try:
            r.delete(key)
        except Exception as e:
            log.debug("Redis invalidate error for %s: %s", cache_key, e)
        return
    _memory.delete(key)


def exists(cache_key: str) -> bool:
    key = f"{_prefix()}{cache_key}"
    r = _get_redis()
    if r:
        try:
            return bool(r.exists(key))
        except Exception as e:
            log.debug("Redis exists error for %s: %s", cache_key, e)
            return False
    return _memory.exists(key)


def increment(cache_key: str, ttl_seconds: int) -> int:
    """Increment a counter; the TTL is set when the counter is created.

    On Redis the key is created with its TTL (SET NX EX) and incremented in
    one MULTI block, so a counter never exists without an expiry.
    Raises on Redis errors so callers can decide how to degrade.
    """
    key = f"{_prefix()}{cache_key}"
    r = _get_redis()
    if r:
        pipe = r.pipeline(transaction=True)
        pipe.set(key, 0, ex=ttl_seconds, nx=True)
        pipe.incr(key)
        _, current = pipe.execute()
        return int(current)
    current = _memory.incr(key)
    if current == 1:
        _memory.expire(key, ttl_seconds)
    return current


def invalidate_prefix(prefix: str) -> int:
    """Delete every entry whose key starts with prefix. Returns count deleted."""
    pattern_base = f"{_prefix()}{prefix}"
    r = _get_redis()
    if r:
        count = 0
        try:
            cursor = 0
            while True:
                cursor, keys = r.scan(cursor=cursor, match=f"{pattern_base}*", count=100)
                if keys:
                    count += r.delete(*keys)
                if cursor == 0:
                    break
        except Exception as e:
            log.debug("Redis prefix invalidation error for %s: %s", prefix, e)
        return count
    return _memory.delete_prefix(pattern_base)


def reset_memory_cache() -> None:
    """Drop every in-process entry (tests and admin tooling)."""
    _memory.clear()
