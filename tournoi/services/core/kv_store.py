"""
Key-value store backends.

The cache layer only needs get/set/delete of strings by key. Two backends:

- ``MemoryKeyValueStore``: process-local dict; development, tests, and the
  in-process token layer.
- ``RedisKeyValueStore``: shared store for production (``redis.asyncio``).

Backends raise on failure; swallowing errors is the cache layer's job.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis.asyncio as redis

from tournoi.core.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Minimal async string store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class RedisKeyValueStore(KeyValueStore):
    """
    Redis-backed store.

    Keys are namespaced with ``prefix`` so the cache can share a Redis
    instance with slowapi's rate-limit counters.
    """

    def __init__(self, url: str, prefix: str = "tournoi:"):
        self.prefix = prefix
        self._client = redis.from_url(url, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def close(self) -> None:
        await self._client.aclose()


def create_store(backend: str, redis_url: Optional[str] = None) -> KeyValueStore:
    """
    Build the configured backend.

    Args:
        backend: "memory" or "redis"
        redis_url: Required for "redis"
    """
    if backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL must be set when KV_BACKEND is 'redis'")
        logger.info("Using Redis key-value store")
        return RedisKeyValueStore(redis_url)

    if backend != "memory":
        raise ValueError(f"Unknown KV backend: {backend}")

    logger.info("Using in-memory key-value store")
    return MemoryKeyValueStore()
