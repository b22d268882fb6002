"""Content-addressed cache for per-file analysis results.

Entries are keyed by file path plus a fingerprint of the file's content, so
editing a file invalidates its cached result even when the path is unchanged.
Concurrent requests for the same key share one in-flight computation.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import datetime
from hashlib import sha256
import logging
import threading
from typing import Any, NamedTuple

from ..errors.models import utc_now

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    """Cache key: file path and content fingerprint."""

    path: str
    fingerprint: str

    def __str__(self) -> str:
        return f"{self.path}:{self.fingerprint}"


def fingerprint(content: str | bytes) -> str:
    """Return the SHA-256 hex digest of ``content``."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return sha256(content).hexdigest()


def build_cache_key(path: str, content: str | bytes) -> CacheKey:
    """Build the cache key for a file's path and content."""
    return CacheKey(path=str(path), fingerprint=fingerprint(content))


@dataclass
class CacheEntry:
    """A resolved cache value."""

    key: CacheKey
    result: Any
    inserted_at: datetime.datetime


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""

    hits: int
    misses: int
    in_flight: int
    entries: int

    @property
    def hit_rate(self) -> float:
        """Hit percentage over all lookups, 0 when nothing was looked up."""
        lookups = self.hits + self.misses
        return (self.hits / lookups) * 100 if lookups else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "in_flight": self.in_flight,
            "entries": self.entries,
            "hit_rate": self.hit_rate,
        }


class AnalysisCache:
    """Cache with at most one concurrent computation per key.

    The first caller for a key owns the computation; callers arriving while it
    runs await the same future. Successful results are stored until ``clear``.
    Failures are propagated to every waiter and are not cached, so the next
    request computes again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._pending: dict[CacheKey, asyncio.Future[Any]] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __repr__(self) -> str:
        stats = self.stats()
        return (
            f"AnalysisCache(entries={stats.entries}, in_flight={stats.in_flight}, "
            f"hits={stats.hits}, misses={stats.misses})"
        )

    async def get_or_compute(
        self, key: CacheKey, compute: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Return the cached value for ``key``, computing it at most once.

        Args:
            key: Cache key for the file
            compute: Zero-argument coroutine function producing the value

        Returns:
            The cached or freshly computed value

        Raises:
            Exception: Whatever ``compute`` raised, for the owner and all
                callers waiting on the same computation
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._hits += 1
                logger.debug(f"Cache hit for {key.path}")
                return entry.result

            future = self._pending.get(key)
            owner = future is None
            if owner:
                self._misses += 1
                future = asyncio.get_running_loop().create_future()
                self._pending[key] = future
            else:
                self._hits += 1

        if not owner:
            logger.debug(f"Joining in-flight computation for {key.path}")
            return await asyncio.shield(future)

        try:
            result = await compute()
        except asyncio.CancelledError:
            self._discard_pending(key)
            future.cancel()
            raise
        except Exception as e:
            self._discard_pending(key)
            future.set_exception(e)
            # Waiters may not exist; mark the exception as retrieved.
            future.exception()
            raise

        with self._lock:
            self._entries[key] = CacheEntry(key=key, result=result, inserted_at=utc_now())
            self._pending.pop(key, None)
        future.set_result(result)
        logger.debug(f"Cached analysis result for {key.path}")
        return result

    def get(self, key: CacheKey) -> Any | None:
        """Return a resolved value without computing or counting a lookup."""
        with self._lock:
            entry = self._entries.get(key)
        return entry.result if entry is not None else None

    def invalidate(self, path: str) -> int:
        """
        Drop every resolved entry for ``path``.

        Args:
            path: File path whose entries should be removed

        Returns:
            Number of removed entries
        """
        with self._lock:
            stale = [key for key in self._entries if key.path == path]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for {path}")
        return len(stale)

    def clear(self) -> None:
        """Remove resolved entries and reset counters. In-flight work is kept."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Analysis cache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                in_flight=len(self._pending),
                entries=len(self._entries),
            )

    def _discard_pending(self, key: CacheKey) -> None:
        with self._lock:
            self._pending.pop(key, None)
