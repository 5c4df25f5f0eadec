"""
Best-effort TTL cache over a key-value store.

Timed entries are stored as ``{"data": ..., "timestamp": ..., "ttl": ...}``
(timestamp in epoch seconds). An entry is fresh while
``now - timestamp <= ttl``; an expired entry reads as absent and is
deleted on that read.

Raw entries (``get_raw``/``set_raw``) skip the envelope and never expire.
They hold data that must outlive the timed cache: manual overrides and
the last-known-good snapshots served when a refresh fails.

No method raises because of the store: failures are logged, counted,
and reported as ``None``/``False``.
"""
import json
import time
from typing import Any, Callable, Iterable, Optional

from tournoi.core import metrics
from tournoi.core.logging import get_logger
from tournoi.services.core.kv_store import KeyValueStore

logger = get_logger(__name__)


class CacheKeys:
    """Well-known cache keys."""

    PLAYERS = "players"
    STATS = "stats"
    PLAYERS_LAST_GOOD = "players:last_good"
    STATS_LAST_GOOD = "stats:last_good"
    HELLOASSO_TOKEN = "helloasso_token"
    REFRESH_RATE_LIMIT = "refresh_rate_limit"
    PLAYER_OVERRIDES = "player_overrides"

    @staticmethod
    def fftt_player(license_number: str) -> str:
        return f"fftt_player:{license_number}"


class TTLCache:
    """
    JSON cache with per-entry TTL.

    Args:
        store: Backend holding serialised entries
        clock: Returns the current time in epoch seconds (injectable for tests)
        name: Label used in logs and metrics
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
        name: str = "shared",
    ):
        self.store = store
        self.clock = clock
        self.name = name

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing, expired or unreadable."""
        try:
            raw = await self.store.get(key)
            if raw is None:
                return None

            entry = json.loads(raw)
            age = self.clock() - entry["timestamp"]
            if age > entry["ttl"]:
                logger.debug(f"Cache entry expired: {key} (age {age:.0f}s, ttl {entry['ttl']}s)")
                await self.store.delete(key)
                return None

            return entry["data"]
        except Exception as e:
            self._record_error("get", key, e)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` for ``ttl_seconds``. Returns False if the write failed."""
        try:
            entry = {"data": value, "timestamp": self.clock(), "ttl": ttl_seconds}
            await self.store.set(key, json.dumps(entry, default=str))
            return True
        except Exception as e:
            self._record_error("set", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self.store.delete(key)
            return True
        except Exception as e:
            self._record_error("delete", key, e)
            return False

    async def delete_many(self, keys: Iterable[str]) -> bool:
        results = [await self.delete(key) for key in keys]
        return all(results)

    async def get_raw(self, key: str) -> Optional[Any]:
        """Read an entry stored without TTL envelope."""
        try:
            raw = await self.store.get(key)
            return None if raw is None else json.loads(raw)
        except Exception as e:
            self._record_error("get_raw", key, e)
            return None

    async def set_raw(self, key: str, value: Any) -> bool:
        try:
            await self.store.set(key, json.dumps(value, default=str))
            return True
        except Exception as e:
            self._record_error("set_raw", key, e)
            return False

    def _record_error(self, operation: str, key: str, error: Exception) -> None:
        logger.error(f"Cache {operation} error for key {key} ({self.name}): {error}")
        metrics.cache_errors_total.labels(cache=self.name, operation=operation).inc()
