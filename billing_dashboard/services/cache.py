"""In-memory page cache module.

Cached read functions are registered under the route path that renders them
(e.g. ``/dashboard/invoices``). A mutation calls ``revalidate_path`` for the
route it affects so the next render recomputes instead of serving stale data.

Keys have the form ``<route>:<function>:<args>``; the connection pool argument
is never part of the key. Search queries are part of the key, so the store is
bounded: expired entries are purged on every write and the least recently
used entries are evicted beyond ``MAX_CACHE_ENTRIES``.
"""
import hashlib
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Callable, Optional, ParamSpec, TypeVar

P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger(__name__)

# insertion order doubles as recency order (least recently used first)
_cache: "OrderedDict[str, dict]" = OrderedDict()

DEFAULT_TTL_SECONDS = 3600
MAX_CACHE_ENTRIES = 512

_cache_stats = {"hits": 0, "misses": 0}


def _make_cache_key(prefix: str, *args, **kwargs) -> str:
    """Create a unique cache key from function arguments.

    Long keys are hashed, keeping the route prefix so that revalidation by
    path still matches them.
    """
    key_parts = [prefix]

    for arg in args:
        if arg is None:
            key_parts.append("None")
        elif isinstance(arg, (list, tuple)):
            key_parts.append(",".join(str(x) for x in sorted(arg) if x is not None))
        else:
            key_parts.append(str(arg))

    for k, v in sorted(kwargs.items()):
        if v is None:
            key_parts.append(f"{k}=None")
        else:
            key_parts.append(f"{k}={v}")

    raw_key = ":".join(key_parts)

    if len(raw_key) > 200:
        key_hash = hashlib.md5(raw_key.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    return raw_key


def get_cache_stats() -> dict:
    """Return cache statistics for monitoring."""
    total = _cache_stats["hits"] + _cache_stats["misses"]
    hit_rate = (_cache_stats["hits"] / total * 100) if total > 0 else 0.0
    return {
        "entries": len(_cache),
        "keys": sorted(_cache),
        "hits": _cache_stats["hits"],
        "misses": _cache_stats["misses"],
        "hit_rate": round(hit_rate, 2),
    }


def get_cached(key: str) -> Optional[Any]:
    """Get a value from cache if not expired."""
    if key not in _cache:
        _cache_stats["misses"] += 1
        return None

    entry = _cache[key]
    expires_at = entry.get("expires_at")

    # None = never expires
    if expires_at and datetime.now() > expires_at:
        del _cache[key]
        _cache_stats["misses"] += 1
        return None

    _cache.move_to_end(key)
    _cache_stats["hits"] += 1
    return entry["value"]


def _purge_expired(now: datetime) -> int:
    expired = [
        k for k, entry in _cache.items()
        if entry["expires_at"] and now > entry["expires_at"]
    ]
    for key in expired:
        del _cache[key]
    return len(expired)


def set_cached(key: str, value: Any, ttl_seconds: Optional[int] = DEFAULT_TTL_SECONDS) -> None:
    """Store a value in cache with optional TTL.

    Purges expired entries, then evicts least recently used entries while the
    store holds more than ``MAX_CACHE_ENTRIES``.
    """
    now = datetime.now()
    _purge_expired(now)

    expires_at = None
    if ttl_seconds:
        expires_at = now + timedelta(seconds=ttl_seconds)

    _cache[key] = {
        "value": value,
        "expires_at": expires_at,
        "created_at": now,
    }
    _cache.move_to_end(key)

    evicted = 0
    while len(_cache) > MAX_CACHE_ENTRIES:
        _cache.popitem(last=False)
        evicted += 1
    if evicted:
        logger.debug("Evicted %d least recently used cache entries", evicted)


def clear_cache(prefix: Optional[str] = None) -> int:
    """Clear cache entries. If prefix given, only clear matching keys."""
    global _cache_stats

    if prefix is None:
        count = len(_cache)
        _cache.clear()
        _cache_stats = {"hits": 0, "misses": 0}
        return count

    keys_to_delete = [k for k in _cache if k.startswith(prefix)]
    for key in keys_to_delete:
        del _cache[key]
    return len(keys_to_delete)


def revalidate_path(path: str) -> int:
    """Mark a route (and the routes nested under it) stale.

    ``/dashboard/customers`` also drops ``/dashboard/customers/<id>`` entries.
    """
    path = path.rstrip("/") or "/"
    keys_to_delete = [
        k for k in _cache
        if k.startswith(f"{path}:") or k.startswith(f"{path}/")
    ]
    for key in keys_to_delete:
        del _cache[key]
    logger.debug("Revalidated %s (%d cached entries dropped)", path, len(keys_to_delete))
    return len(keys_to_delete)


def cached(path: str, ttl_seconds: Optional[int] = DEFAULT_TTL_SECONDS):
    """
    Decorator caching an async read function under a route path.

    The first positional argument (the connection pool) is left out of the key.

    Usage:
        @cached("/dashboard/invoices")
        async def fetch_filtered_invoices(pool, query, current_page):
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        prefix = f"{path}:{func.__name__}"

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            cache_args = args[1:] if args else ()
            cache_kwargs = {k: v for k, v in kwargs.items() if k != "pool"}

            key = _make_cache_key(prefix, *cache_args, **cache_kwargs)

            cached_value = get_cached(key)
            if cached_value is not None:
                return cached_value

            result = await func(*args, **kwargs)
            set_cached(key, result, ttl_seconds)
            return result

        wrapper.make_cache_key = lambda *a, **kw: _make_cache_key(prefix, *a, **kw)
        return wrapper
    return decorator
