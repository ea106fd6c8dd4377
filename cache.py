"""In-memory TTL cache for identity-provider lookups."""
import threading
import time
from typing import Any, Optional

# Cache configuration
DEFAULT_TTL = 60  # seconds
MAX_CACHE_SIZE = 1000

_cache: dict[str, dict[str, Any]] = {}
_lock = threading.Lock()


def _cleanup_expired(now: float) -> None:
    expired_keys = [key for key, entry in _cache.items() if entry['expires_at'] < now]
    for key in expired_keys:
        _cache.pop(key, None)


def _evict_oldest() -> None:
    """Drop the oldest 10% of entries once the cache is full."""
    if len(_cache) < MAX_CACHE_SIZE:
        return
    by_age = sorted(_cache.items(), key=lambda item: item[1]['created_at'])
    for key, _ in by_age[:max(1, MAX_CACHE_SIZE // 10)]:
        _cache.pop(key, None)


def get(key: str) -> Optional[Any]:
    """Get value from cache, None when missing or expired."""
    now = time.time()
    with _lock:
        entry = _cache.get(key)
        if entry is None:
            return None
        if entry['expires_at'] < now:
            _cache.pop(key, None)
            return None
        return entry['value']


def set(key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
    """Set value in cache with TTL."""
    now = time.time()
    with _lock:
        _cleanup_expired(now)
        _evict_oldest()
        _cache[key] = {'value': value, 'expires_at': now + ttl, 'created_at': now}


def clear(prefix: Optional[str] = None) -> None:
    """Clear cache entries, optionally filtered by prefix."""
    with _lock:
        if prefix is None:
            _cache.clear()
            return
        for key in [key for key in _cache if key.startswith(prefix)]:
            _cache.pop(key, None)
