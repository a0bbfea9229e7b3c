"""
Read-through cache for catalog reads.

Values live in named regions ("books", "book_stats") inside a per-app store
kept in ``app.extensions["book_cache"]``. Writers invalidate explicitly after
a successful commit; nothing expires on its own. A value loaded while its
region was invalidated is returned but not stored.
"""
from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from flask import current_app

BOOKS = "books"
BOOK_STATS = "book_stats"

_MISSING = object()


class _CacheStore:
    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._regions: Dict[str, Dict[Hashable, Any]] = {}
        # evict/clear her seferinde artar; yükleme sırasında değiştiyse set atlanır
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.RLock()

    def generation(self, region: str) -> Tuple[int, int]:
        with self._lock:
            return self._epoch, self._generations.get(region, 0)

    def get(self, region: str, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._regions.get(region, {}).get(key, _MISSING)
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def set(self, region: str, key: Hashable, value: Any, generation: Optional[Tuple[int, int]] = None) -> bool:
        """Store ``value``; with ``generation`` only if the region was not invalidated since."""
        if not self.enabled:
            return False
        with self._lock:
            if generation is not None and generation != (self._epoch, self._generations.get(region, 0)):
                return False
            self._regions.setdefault(region, {})[key] = copy.deepcopy(value)
            return True

    def _bump(self, region: str) -> None:
        self._generations[region] = self._generations.get(region, 0) + 1

    def evict(self, region: str, key: Hashable) -> None:
        with self._lock:
            self._regions.get(region, {}).pop(key, None)
            self._bump(region)

    def clear(self, region: Optional[str] = None) -> None:
        with self._lock:
            if region is None:
                self._regions.clear()
                self._epoch += 1
            else:
                self._regions.pop(region, None)
                self._bump(region)

    def keys(self, region: str):
        with self._lock:
            return set(self._regions.get(region, {}).keys())


class BookCache:
    """Flask extension facade; every call resolves the current app's store."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.extensions = getattr(app, "extensions", {})
        app.extensions["book_cache"] = _CacheStore(
            enabled=app.config.get("CACHE_ENABLED", True)
        )

    @property
    def _store(self) -> _CacheStore:
        return current_app.extensions["book_cache"]

    @property
    def enabled(self) -> bool:
        return self._store.enabled

    def get(self, region: str, key: Hashable, default: Any = None) -> Any:
        return self._store.get(region, key, default)

    def set(self, region: str, key: Hashable, value: Any) -> None:
        self._store.set(region, key, value)

    def evict(self, region: str, key: Hashable) -> None:
        self._store.evict(region, key)

    def clear(self, region: Optional[str] = None) -> None:
        self._store.clear(region)

    def keys(self, region: str):
        return self._store.keys(region)

    def cached(self, region: str, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key`` or load, store and return it."""
        store = self._store
        value = store.get(region, key, _MISSING)
        if value is not _MISSING:
            current_app.logger.debug(f"[cache] hit {region}:{key}")
            return value
        generation = store.generation(region)
        value = loader()
        if not store.set(region, key, value, generation=generation) and store.enabled:
            current_app.logger.debug(f"[cache] {region}:{key} invalidated during load, not stored")
        return value
