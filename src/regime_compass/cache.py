"""Result cache, memoization wrappers and stage timing.

The cache is constructed by the caller and passed in; nothing here keeps
module-level state.
"""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Optional

from .config import CacheConfig, DEFAULT_CACHE_CONFIG
from .models import MarketSnapshot

logger = logging.getLogger(__name__)


def estimate_size(value: Any) -> int:
    """Approximate footprint in bytes: two bytes per JSON character."""
    try:
        return 2 * len(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return len(repr(value))


def snapshot_key(snapshot: MarketSnapshot) -> str:
    """Stable hash of a snapshot's serialized form."""
    return hashlib.sha256(snapshot.to_json().encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    size: int
    hits: int = 0


@dataclass(frozen=True)
class CacheStats:
    """Counters reported by ResultCache.stats()."""
    hits: int
    misses: int
    evictions: int
    entries: int
    size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class ResultCache:
    """TTL cache with least-recently-used eviction.

    Entries are evicted oldest-access first whenever the entry count or the
    approximate byte size goes over the configured limits.
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Callable[[], float] = time.monotonic):
        """Initialize cache.

        Args:
            config: Size, count and TTL limits
            clock: Monotonic time source in seconds
        """
        self.config = config or DEFAULT_CACHE_CONFIG
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._size = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._last_sweep = clock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        self._maybe_sweep()
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return default
        if entry.expires_at <= self._clock():
            self._remove(key)
            self._misses += 1
            return default
        entry.hits += 1
        self._hits += 1
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value.

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to live; the configured default when omitted
        """
        if not self.config.enabled:
            return
        ttl = self.config.default_ttl if ttl is None else ttl
        size = estimate_size(value)
        if size > self.config.max_size_bytes:
            logger.debug(f"Not caching {key!r}: {size} bytes exceeds cache limit")
            return

        if key in self._entries:
            self._remove(key)
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl, size=size)
        self._size += size
        self._evict()

    def has(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def delete(self, key: Hashable) -> bool:
        if key not in self._entries:
            return False
        self._remove(key)
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._size = 0

    def sweep_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        self._last_sweep = now
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            self._remove(key)
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            entries=len(self._entries),
            size=self._size,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def _remove(self, key: Hashable) -> None:
        entry = self._entries.pop(key)
        self._size -= entry.size

    def _evict(self) -> None:
        while self._entries and (
            len(self._entries) > self.config.max_entries or self._size > self.config.max_size_bytes
        ):
            key, entry = self._entries.popitem(last=False)
            self._size -= entry.size
            self._evictions += 1

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self.config.cleanup_interval:
            self.sweep_expired()


def cached(
    cache: ResultCache,
    key_fn: Callable[..., Hashable],
    compute: Callable[..., Any],
    ttl: Optional[float] = None,
) -> Callable[..., Any]:
    """Wrap ``compute`` so results are read from and stored in ``cache``.

    ``key_fn`` receives the same arguments as ``compute``. None results are
    not cached.
    """
    missing = object()

    def wrapper(*args, **kwargs):
        key = key_fn(*args, **kwargs)
        value = cache.get(key, missing)
        if value is not missing:
            return value
        value = compute(*args, **kwargs)
        if value is not None:
            cache.set(key, value, ttl)
        return value

    wrapper.__name__ = getattr(compute, "__name__", "cached")
    wrapper.__doc__ = compute.__doc__
    return wrapper


def memoize(compute: Callable[..., Any], key_fn: Optional[Callable[..., Hashable]] = None) -> Callable[..., Any]:
    """Unbounded memoization keyed on the positional arguments by default."""
    results: Dict[Hashable, Any] = {}

    def default_key(*args, **kwargs):
        return args + tuple(sorted(kwargs.items()))

    key_fn = key_fn or default_key

    def wrapper(*args, **kwargs):
        key = key_fn(*args, **kwargs)
        if key not in results:
            results[key] = compute(*args, **kwargs)
        return results[key]

    wrapper.__name__ = getattr(compute, "__name__", "memoized")
    wrapper.__doc__ = compute.__doc__
    wrapper.cache_clear = results.clear
    return wrapper


@dataclass
class TimingStats:
    count: int = 0
    total: float = 0.0
    max: float = 0.0
    failures: int = 0

    @property
    def average(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total / self.count


@dataclass
class PerformanceMonitor:
    """Per-operation call counts and durations in seconds."""
    clock: Callable[[], float] = time.perf_counter
    slow_threshold: float = 1.0
    _stats: Dict[str, TimingStats] = field(default_factory=dict)

    def record(self, name: str, duration: float, failed: bool = False) -> None:
        stats = self._stats.setdefault(name, TimingStats())
        stats.count += 1
        stats.total += duration
        stats.max = max(stats.max, duration)
        if failed:
            stats.failures += 1
        if duration > self.slow_threshold:
            logger.warning(f"Slow operation {name}: {duration:.3f}s")

    def get(self, name: str) -> Optional[TimingStats]:
        return self._stats.get(name)

    def names(self) -> List[str]:
        return sorted(self._stats)

    def report(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {
                "count": s.count,
                "average": s.average,
                "max": s.max,
                "failures": s.failures,
            }
            for name, s in sorted(self._stats.items())
        }

    def reset(self) -> None:
        self._stats.clear()


def timed(monitor: PerformanceMonitor, name: str, compute: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``compute`` so every call is timed under ``name``.

    Exceptions propagate and are counted as failures.
    """

    def wrapper(*args, **kwargs):
        start = monitor.clock()
        failed = True
        try:
            result = compute(*args, **kwargs)
            failed = False
            return result
        finally:
            monitor.record(name, monitor.clock() - start, failed)

    wrapper.__name__ = getattr(compute, "__name__", name)
    wrapper.__doc__ = compute.__doc__
    return wrapper
