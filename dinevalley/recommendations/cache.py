from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Callable

from ..filters.models import ProviderQuery
from ..places.models import SearchPage

logger = logging.getLogger(__name__)

_cache: dict[str, dict[str, Any]] = {}
_hits: int = 0
_misses: int = 0
_DEFAULT_TTL = 300  # 5 minutes
_MAX_ENTRIES = 512


def _make_key(query: ProviderQuery, namespace: str = "") -> str:
    payload = {"namespace": namespace, **query.model_dump()}
    normalized = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def cache_get(query: ProviderQuery, namespace: str = "", ttl: float = _DEFAULT_TTL) -> SearchPage | None:
    global _hits, _misses
    key = _make_key(query, namespace)
    entry = _cache.get(key)
    if entry and time.time() - entry["created_at"] < ttl:
        _hits += 1
        return entry["value"]
    if entry:
        del _cache[key]
    _misses += 1
    return None


def _evict(now: float, ttl: float) -> None:
    expired = [key for key, entry in _cache.items() if now - entry["created_at"] >= ttl]
    for key in expired:
        del _cache[key]
    # Dicts keep insertion order, so the first keys are the oldest.
    while len(_cache) >= _MAX_ENTRIES:
        del _cache[next(iter(_cache))]


def cache_set(query: ProviderQuery, page: SearchPage, namespace: str = "", ttl: float = _DEFAULT_TTL) -> None:
    now = time.time()
    key = _make_key(query, namespace)
    _cache.pop(key, None)
    _evict(now, ttl)
    _cache[key] = {"value": page, "created_at": now}


def cached_search(
    query: ProviderQuery,
    fetch: Callable[[ProviderQuery], SearchPage],
    namespace: str = "",
) -> SearchPage:
    """Return the cached page for *query*, fetching and storing it on a miss.

    Failed fetches are not cached.
    """
    page = cache_get(query, namespace)
    if page is not None:
        logger.debug("Search cache hit for %r", query.keyword)
        return page
    page = fetch(query)
    cache_set(query, page, namespace)
    return page


def get_cache_stats() -> dict:
    total = _hits + _misses
    return {
        "size": len(_cache),
        "hits": _hits,
        "misses": _misses,
        "hit_rate": round(_hits / total * 100, 1) if total > 0 else 0.0,
    }


def clear_cache() -> None:
    global _hits, _misses
    _cache.clear()
    _hits = 0
    _misses = 0
