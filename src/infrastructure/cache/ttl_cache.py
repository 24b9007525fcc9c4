"""
TTL Read Cache

In-process key→value store whose entries expire after a per-entry TTL.
It exists to deduplicate identical reads against the pay-per-read document
store, so it is a correctness cache: there is no LRU or size bound.

Expiry:
    An entry written at ``t0`` with ``ttl`` is served for every ``now`` with
    ``now - t0 < ttl`` and never at or beyond ``t0 + ttl``. Expired entries
    are evicted lazily on read and proactively by the periodic sweep
    (default every 10 minutes).

Author: System Architect
Date: 2025-12-06
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from src.core.config.constants import DEFAULT_CACHE_CLEANUP_INTERVAL, DEFAULT_CACHE_TTL
from src.core.config.settings import Settings, get_settings
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """One cached payload with its write time and lifetime."""

    key: str
    payload: T
    written_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.written_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) >= self.ttl


class TTLCache:
    """
    Expiring key→value store.

    Usage:
        cache = TTLCache(default_ttl=300)
        cache.set("calls", payload)
        cache.get("calls")           # payload
        cache.invalidate_by_prefix("calls")
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        cleanup_interval: float = DEFAULT_CACHE_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._cleanup_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, clock: Callable[[], float] = time.time) -> "TTLCache":
        cache_settings = (settings or get_settings()).cache
        return cls(
            default_ttl=cache_settings.CACHE_DEFAULT_TTL,
            cleanup_interval=cache_settings.CACHE_CLEANUP_INTERVAL,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any prior entry."""
        self._entries[key] = CacheEntry(
            key=key,
            payload=value,
            written_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def get(self, key: str) -> Any | None:
        """Return the payload, or None if absent or expired (expired is evicted)."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug("Cache entry expired", stage="CACHE.2", key=key)
            return None

        logger.debug("Cache hit", stage="CACHE.1", key=key)
        return entry.payload

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> int:
        """
        Remove every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        if keys:
            logger.debug("Cache prefix invalidated", stage="CACHE.3", prefix=prefix, removed=len(keys))
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Evict all expired entries. Returns the number evicted."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Cache cleanup", stage="CACHE.4", evicted=len(expired), remaining=len(self._entries))
        return len(expired)

    def get_stats(self) -> dict[str, int]:
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            "total_entries": len(self._entries),
            "valid_entries": len(self._entries) - expired,
            "expired_entries": expired,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Periodic sweep
    # ------------------------------------------------------------------

    def start_cleanup(self) -> None:
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(self._run_cleanup())

    async def stop_cleanup(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None

    async def _run_cleanup(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup()
