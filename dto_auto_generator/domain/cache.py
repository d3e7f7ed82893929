"""
Memoization stores used by the resolvers.

Two independent stores:

* ``DeclarationCache`` keeps per-declaration results in a
  ``weakref.WeakKeyDictionary`` so entries go away with the declaration.
* ``BoundedCache`` is a string-keyed store with an entry bound (oldest
  insertion evicted) and a periodic time-to-live sweep.

Both are bundled in a ``ResolutionCache`` that is created for one generation
run and passed into every resolver. Removing any entry only costs
recomputation; results never depend on what is cached.
"""

import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..constants import CacheDefaults

logger = logging.getLogger(__name__)


class _CacheMiss:
    """Sentinel type for absent entries; ``None`` is a legitimate cached value."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CACHE_MISS"


CACHE_MISS = _CacheMiss()


class DeclarationCache:
    """
    Declaration-scoped store: ``declaration -> {kind -> {key -> value}}``.

    Entries are weakly associated with the declaration and never keep it
    alive. The store cannot be iterated or cleared entry by entry; ``drop()``
    replaces it wholesale.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._store: "weakref.WeakKeyDictionary[Any, Dict[str, Dict[Any, Any]]]" = weakref.WeakKeyDictionary()

    def scope(self, declaration: Any, kind: str) -> Dict[Any, Any]:
        """Return the mutable key/value map for ``(declaration, kind)``."""
        with self._lock:
            kinds = self._store.get(declaration)
            if kinds is None:
                kinds = {}
                self._store[declaration] = kinds
            return kinds.setdefault(kind, {})

    def drop(self) -> None:
        with self._lock:
            self._store = weakref.WeakKeyDictionary()

    def tracks(self, declaration: Any) -> bool:
        """Whether any entry is held for ``declaration``."""
        return declaration in self._store


@dataclass
class CacheStats:
    """Counters reported by ``BoundedCache.stats()``."""

    size: int
    max_entries: int
    hits: int
    misses: int
    evictions: int
    expired: int
    operations: int


class BoundedCache:
    """
    Process-global string-keyed store with bounded size and TTL sweeps.

    Eviction is by oldest insertion timestamp, not LRU: reads never refresh an
    entry, re-setting a key does. All read-modify-write sequences run under a
    single lock because synchronous generators execute on worker threads.
    """

    def __init__(
        self,
        max_entries: int = CacheDefaults.MAX_ENTRIES,
        ttl_seconds: float = CacheDefaults.TTL_SECONDS,
        sweep_interval: int = CacheDefaults.SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if sweep_interval < 1:
            raise ValueError("sweep_interval must be at least 1")

        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._lock = threading.Lock()
        # dicts keep insertion order, but re-set keys move to the end below,
        # so the first key is always the oldest timestamp
        self._entries: Dict[str, tuple] = {}
        self._operations = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expired = 0

    def get(self, key: str) -> Any:
        """Return the cached value or ``CACHE_MISS``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return CACHE_MISS
            self._hits += 1
            return entry[0]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[key] = (value, now)

            self._operations += 1
            if self._operations % self.sweep_interval == 0:
                self._sweep(now)

    def clear(self) -> None:
        """Empty the store and reset every counter."""
        with self._lock:
            self._entries = {}
            self._operations = 0
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expired = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self.max_entries,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expired=self._expired,
                operations=self._operations,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def _evict_oldest(self) -> None:
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        self._evictions += 1
        logger.debug(f"Evicted oldest cache entry: {oldest}")

    def _sweep(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        stale = [key for key, (_, stamp) in self._entries.items() if stamp < cutoff]
        for key in stale:
            del self._entries[key]
        if stale:
            self._expired += len(stale)
            logger.debug(f"Cache sweep dropped {len(stale)} expired entries")


class ResolutionCache:
    """Both memoization stores for one generation run."""

    def __init__(
        self,
        max_entries: int = CacheDefaults.MAX_ENTRIES,
        ttl_seconds: float = CacheDefaults.TTL_SECONDS,
        sweep_interval: int = CacheDefaults.SWEEP_INTERVAL,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.declarations = DeclarationCache()
        self.shared = BoundedCache(
            max_entries=max_entries,
            ttl_seconds=ttl_seconds,
            sweep_interval=sweep_interval,
            clock=clock or time.monotonic,
        )

    def scope(self, declaration: Any, kind: str) -> Dict[Any, Any]:
        return self.declarations.scope(declaration, kind)

    def get(self, key: str) -> Any:
        return self.shared.get(key)

    def set(self, key: str, value: Any) -> None:
        self.shared.set(key, value)

    def drop_declarations(self) -> None:
        self.declarations.drop()

    def clear(self) -> None:
        """Reset both stores between independent runs."""
        self.shared.clear()
        self.declarations.drop()
