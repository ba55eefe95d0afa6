"""
Window cache - TTL memoization of graph and health results

Results are keyed by (repository, kind, window start, window end). Window
boundaries are normalized to whole days in one fixed timezone before keying,
so "2026-03-01T08:15Z" and "2026-03-01" hit the same entry. Unwindowed
results (the trigger graph) use None for both boundaries.

Expired entries are swept on every write, and the cache holds at most
max_size entries, evicting the oldest write first.
Concurrent misses for the same key each recompute; the last writer wins.

Usage:
    cache = WindowCache(ttl_seconds=300)
    summary = cache.get_or_compute("octo/repo", "2026-03-01", "2026-03-30", compute)
"""

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Any, TypeVar

from omnilens.core import get_logger
from omnilens.utils.datetime_utils import WindowError, normalize_window

logger = get_logger(__name__)

T = TypeVar("T")

CacheKey = tuple[str, str, datetime | None, datetime | None]
WindowBound = date | datetime | str | None


@dataclass
class _Entry:
    value: Any
    expires_at: float


class WindowCache:
    """
    Thread-safe TTL cache keyed by repository and normalized window.

    Attributes:
        ttl_seconds: Lifetime of each entry
        max_size: Entry count bound; the oldest write is evicted beyond it
        tz: Timezone used to normalize window boundaries to whole days
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        tz: tzinfo = UTC,
        max_size: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Entry lifetime in seconds (must be positive)
            tz: Timezone for day normalization
            max_size: Maximum number of entries (must be positive)
            clock: Monotonic clock returning seconds; injectable for tests
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.ttl_seconds = ttl_seconds
        self.tz = tz
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()

    def key_for(self, repository: str, start: WindowBound, end: WindowBound, kind: str = "") -> CacheKey:
        """
        Build the cache key for a repository and window.

        Raises:
            WindowError: If only one boundary is given or start is after end
        """
        if start is None and end is None:
            return (repository, kind, None, None)
        if start is None or end is None:
            raise WindowError("Window start and end must both be given or both be None")
        window_start, window_end = normalize_window(start, end, self.tz)
        return (repository, kind, window_start, window_end)

    def get(self, repository: str, start: WindowBound = None, end: WindowBound = None, kind: str = "") -> Any | None:
        """Return the cached value, or None if absent or expired."""
        key = self.key_for(repository, start, end, kind)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now >= entry.expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {repository} {kind}", extra={"repository": repository, "kind": kind})
                return None
            return entry.value

    def put(self, repository: str, start: WindowBound, end: WindowBound, value: Any, kind: str = "") -> None:
        key = self.key_for(repository, start, end, kind)
        now = self._clock()
        with self._lock:
            self._drop_expired(now)
            # Re-inserting moves the key to the end, keeping dict order oldest-write-first
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_size:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = _Entry(value=value, expires_at=now + self.ttl_seconds)

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _lookup(self, repository: str, start: WindowBound, end: WindowBound, kind: str) -> tuple[bool, Any]:
        value = self.get(repository, start, end, kind)
        # None is never stored by compute paths, so it doubles as "miss"
        hit = value is not None
        logger.debug(
            f"Cache {'hit' if hit else 'miss'}: {repository} {kind}",
            extra={"repository": repository, "kind": kind, "cache_hit": hit},
        )
        return hit, value

    def get_or_compute(
        self,
        repository: str,
        start: WindowBound,
        end: WindowBound,
        compute_fn: Callable[[], T],
        kind: str = "",
    ) -> T:
        """
        Return the cached result or compute, store and return it.

        compute_fn runs outside the lock. If it raises, nothing is stored and
        the exception propagates.

        Args:
            repository: Repository identifier
            start: Window start (day granularity), or None for unwindowed results
            end: Window end (day granularity), or None for unwindowed results
            compute_fn: Zero-argument callable producing the result
            kind: Result kind, so several results can share one window

        Returns:
            Cached or freshly computed result
        """
        hit, value = self._lookup(repository, start, end, kind)
        if hit:
            return value
        value = compute_fn()
        if value is not None:
            self.put(repository, start, end, value, kind)
        return value

    async def aget_or_compute(
        self,
        repository: str,
        start: WindowBound,
        end: WindowBound,
        compute_fn: Callable[[], Awaitable[T]],
        kind: str = "",
    ) -> T:
        """Async variant of get_or_compute for coroutine-producing compute functions."""
        hit, value = self._lookup(repository, start, end, kind)
        if hit:
            return value
        value = await compute_fn()
        if value is not None:
            self.put(repository, start, end, value, kind)
        return value

    def invalidate(self, repository: str) -> int:
        """Drop every entry for a repository. Returns the number removed."""
        with self._lock:
            keys = [key for key in self._entries if key[0] == repository]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def purge_expired(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
