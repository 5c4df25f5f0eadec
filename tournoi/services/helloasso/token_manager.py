"""
HelloAsso OAuth2 access tokens (client credentials flow).

Tokens live in two cache layers: a process-local one (cheapest, lost on
restart) and the shared cache (survives restarts, visible to the
scheduler process). A cached token is only used while it expires more
than ``USABLE_MARGIN`` seconds from now, and it is cached for
``expires_in - EXPIRY_BUFFER`` seconds so it is renewed early.
"""
from typing import Awaitable, Callable, Optional

import httpx

from tournoi.core import metrics
from tournoi.core.errors import ApiError, error_from_response, error_from_transport
from tournoi.core.logging import get_logger
from tournoi.core.retry import with_retry
from tournoi.models.helloasso import TokenResponse
from tournoi.services.core.cache import CacheKeys, TTLCache
from tournoi.services.core.kv_store import MemoryKeyValueStore

logger = get_logger(__name__)

HELLOASSO_AUTH_URL = "https://api.helloasso.com/oauth2/token"

EXPIRY_BUFFER = 300  # seconds shaved off the advertised lifetime
USABLE_MARGIN = 60  # a token expiring sooner than this is not handed out


class TokenManager:
    """
    Obtain and cache HelloAsso bearer tokens.

    Args:
        client_id: OAuth2 client id
        client_secret: OAuth2 client secret
        http_client: Shared httpx client
        shared_cache: Cache visible to every process
        local_cache: Process-local layer; defaults to a fresh in-memory cache
        sleep: Backoff sleep passed to the retry wrapper (tests)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient,
        shared_cache: TTLCache,
        local_cache: Optional[TTLCache] = None,
        auth_url: str = HELLOASSO_AUTH_URL,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.http = http_client
        self.shared_cache = shared_cache
        self.local_cache = local_cache or TTLCache(
            MemoryKeyValueStore(), clock=shared_cache.clock, name="local"
        )
        self.auth_url = auth_url
        self.sleep = sleep

    async def get_token(self, force_refresh: bool = False) -> str:
        """
        Return a usable access token.

        Args:
            force_refresh: Ignore both cache layers and request a new token

        Raises:
            ApiError: BAD_REQUEST when credentials are not configured,
                UNAUTHORIZED when HelloAsso rejects them
        """
        if not force_refresh:
            for layer in (self.local_cache, self.shared_cache):
                cached = await layer.get(CacheKeys.HELLOASSO_TOKEN)
                if self._is_usable(cached):
                    if layer is self.shared_cache:
                        await self._store_local(cached)
                    return cached["access_token"]

        await self.invalidate()

        response = await self._request_token()
        ttl = response.expires_in - EXPIRY_BUFFER
        entry = {
            "access_token": response.access_token,
            "expires_at": self.shared_cache.clock() + ttl,
        }

        await self.local_cache.set(CacheKeys.HELLOASSO_TOKEN, entry, ttl)
        await self.shared_cache.set(CacheKeys.HELLOASSO_TOKEN, entry, ttl)
        logger.info(f"Obtained new HelloAsso access token (valid {ttl}s)")

        return response.access_token

    async def invalidate(self) -> None:
        """Drop the token from both layers."""
        await self.local_cache.delete(CacheKeys.HELLOASSO_TOKEN)
        await self.shared_cache.delete(CacheKeys.HELLOASSO_TOKEN)

    def _is_usable(self, cached) -> bool:
        if not cached or "access_token" not in cached:
            return False
        return cached.get("expires_at", 0) > self.shared_cache.clock() + USABLE_MARGIN

    async def _store_local(self, cached: dict) -> None:
        remaining = int(cached["expires_at"] - self.shared_cache.clock())
        await self.local_cache.set(CacheKeys.HELLOASSO_TOKEN, cached, remaining)

    async def _request_token(self) -> TokenResponse:
        if not self.client_id or not self.client_secret:
            raise ApiError.bad_request("HelloAsso client credentials not configured")

        async def exchange() -> TokenResponse:
            try:
                response = await self.http.post(
                    self.auth_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.RequestError as e:
                metrics.record_upstream("helloasso_auth", "transport_error")
                raise error_from_transport(e, "HelloAsso") from e

            if response.is_error:
                metrics.record_upstream("helloasso_auth", str(response.status_code))
                raise error_from_response(response, "HelloAsso", "HELLOASSO_AUTH_ERROR")

            metrics.record_upstream("helloasso_auth", "ok")
            return TokenResponse.model_validate(response.json())

        return await with_retry(exchange, sleep=self.sleep)
