"""
Refresh rate limiter.

A single cache entry holds the time of the last accepted refresh. The
marker is written before the gated work starts, so a second caller sees
it even while the first refresh is still running. Two callers racing on
the same instant can both pass; the limiter is advisory.
"""
import math
from dataclasses import dataclass

from tournoi.core.logging import get_logger
from tournoi.services.core.cache import TTLCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0  # whole seconds, only meaningful when blocked


class RateLimiter:
    def __init__(self, cache: TTLCache):
        self.cache = cache

    async def check_and_mark(self, key: str, window_seconds: int) -> RateLimitDecision:
        """
        Allow one call per ``window_seconds`` for ``key``.

        Returns:
            ``RateLimitDecision(allowed=True)`` after writing a fresh marker,
            or ``allowed=False`` with the remaining wait rounded up.
        """
        now = self.cache.clock()
        marker = await self.cache.get(key)

        if marker is not None:
            elapsed = now - marker.get("timestamp", 0)
            if elapsed < window_seconds:
                retry_after = max(1, math.ceil(window_seconds - elapsed))
                logger.info(f"Rate limit hit for {key}, retry in {retry_after}s")
                return RateLimitDecision(allowed=False, retry_after=retry_after)

        await self.cache.set(key, {"timestamp": now}, window_seconds)
        return RateLimitDecision(allowed=True)
