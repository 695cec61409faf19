"""
Cache service for derived plan summaries (fill progress).

Uses Redis when REDIS_URL is configured, falls back to a simple
in-memory dict for development/testing. A TTL of 0 disables caching.
"""

import json
import logging
import time

import redis

logger = logging.getLogger(__name__)

# ── In-memory fallback ───────────────────────────────────────────────────

_memory_store: dict = {}  # key → (value_json, expire_ts)


class _MemoryBackend:
    """Simple dict cache for dev/testing."""

    def get(self, key):
        entry = _memory_store.get(key)
        if entry is None:
            return None
        val, expires = entry
        if expires and time.time() > expires:
            _memory_store.pop(key, None)
            return None
        return val

    def setex(self, key, ttl_seconds, value):
        _memory_store[key] = (value, time.time() + ttl_seconds)

    def delete(self, *keys):
        for k in keys:
            _memory_store.pop(k, None)

    def flushdb(self):
        _memory_store.clear()

    def ping(self):
        return True


# ── Singleton cache backend ──────────────────────────────────────────────

_backend = None
DEFAULT_TTL = 60


def init_cache(app):
    """Pick the backend from ``REDIS_URL`` (called by the app factory)."""
    global _backend
    redis_url = app.config.get("REDIS_URL") or ""
    if redis_url and not redis_url.startswith("memory://"):
        try:
            _backend = redis.from_url(redis_url, decode_responses=True)
            _backend.ping()
            logger.info("Cache: using Redis at %s", redis_url.split("@")[-1])
        except redis.RedisError as exc:
            logger.warning("Redis unavailable (%s), falling back to memory cache", exc)
            _backend = _MemoryBackend()
    else:
        _backend = _MemoryBackend()
    return _backend


def _get_backend():
    global _backend
    if _backend is None:
        _backend = _MemoryBackend()
    return _backend


# ── Key builders ─────────────────────────────────────────────────────────

def progress_key(plan_id):
    return f"progress:{plan_id}"


# ── Public API ───────────────────────────────────────────────────────────


def get_cached(key, ttl=DEFAULT_TTL, loader=None):
    """Generic cache-aside.  If *loader* is provided, it's called on miss
    and the result is cached (unless ``ttl`` is 0)."""
    be = _get_backend()
    if ttl and ttl > 0:
        raw = be.get(key)
        if raw is not None:
            try:
                return json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                pass
    if loader is None:
        return None
    value = loader()
    if value is not None and ttl and ttl > 0:
        be.setex(key, ttl, json.dumps(value))
    return value


def delete_cached(*keys):
    _get_backend().delete(*keys)


def invalidate_plan(plan_id):
    """Drop every cached summary of one plan (after any group write)."""
    delete_cached(progress_key(plan_id))


def clear_all():
    """Flush entire cache (mainly for testing)."""
    _get_backend().flushdb()


def health_check():
    """Return cache backend status."""
    try:
        be = _get_backend()
        be.ping()
        backend_type = "redis" if not isinstance(be, _MemoryBackend) else "memory"
        return {"status": "ok", "backend": backend_type}
    except redis.RedisError as exc:
        return {"status": "error", "detail": str(exc)}
