"""
Shared infrastructure services.

- kv_store: key-value backends (in-memory, Redis)
- cache: best-effort TTL cache over a key-value store
- rate_limiter: single-key refresh gate
"""
from tournoi.services.core.cache import CacheKeys, TTLCache
from tournoi.services.core.kv_store import KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore, create_store
from tournoi.services.core.rate_limiter import RateLimitDecision, RateLimiter

__all__ = [
    "CacheKeys",
    "TTLCache",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
    "RateLimitDecision",
    "RateLimiter",
]
