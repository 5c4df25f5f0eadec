"""
Wiring of the service graph from settings.

Both the API process (lifespan in ``main.py``) and the standalone
scheduler (``run_scheduler.py``) build their services here, so they
share the same cache keys, clients and pipeline.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from tournoi.core.config import Settings
from tournoi.core.logging import get_logger
from tournoi.services.core.cache import TTLCache
from tournoi.services.core.kv_store import KeyValueStore, create_store
from tournoi.services.fftt.client import RankingClient
from tournoi.services.helloasso.client import HelloAssoClient
from tournoi.services.helloasso.token_manager import TokenManager
from tournoi.services.registrations.overrides import OverrideStore
from tournoi.services.registrations.reconciler import RegistrationReconciler
from tournoi.services.registrations.service import RegistrationService

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    store: KeyValueStore
    http_client: httpx.AsyncClient
    cache: TTLCache
    registration_service: RegistrationService

    async def close(self) -> None:
        await self.http_client.aclose()
        await self.store.close()


def build_services(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
    store: Optional[KeyValueStore] = None,
) -> ServiceContainer:
    """
    Build the service graph.

    Args:
        settings: Application settings
        http_client: Client for upstream calls (defaults to one with ``HTTP_TIMEOUT``)
        store: Key-value backend (defaults to ``KV_BACKEND``)
    """
    store = store or create_store(settings.KV_BACKEND, settings.REDIS_URL)
    http_client = http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
    cache = TTLCache(store)

    tokens = TokenManager(
        client_id=settings.HELLOASSO_CLIENT_ID,
        client_secret=settings.HELLOASSO_CLIENT_SECRET,
        http_client=http_client,
        shared_cache=cache,
    )
    helloasso = HelloAssoClient(
        token_manager=tokens,
        http_client=http_client,
        organization_slug=settings.HELLOASSO_ORGANIZATION_SLUG,
        form_slug=settings.HELLOASSO_FORM_SLUG,
    )
    rankings = RankingClient(
        serial=settings.FFTT_API_ID,
        password=settings.FFTT_API_KEY,
        http_client=http_client,
        cache=cache,
        cache_ttl=settings.RANKING_CACHE_TTL,
    )

    service = RegistrationService(
        helloasso=helloasso,
        rankings=rankings,
        cache=cache,
        overrides=OverrideStore(cache, settings.OVERRIDES_FILE),
        reconciler=RegistrationReconciler(settings.RECONCILE_GROUP_BY),
        cache_ttl=settings.CACHE_TTL,
        refresh_window=settings.REFRESH_RATE_LIMIT_SECONDS,
    )

    logger.info(
        f"Services ready (store={settings.KV_BACKEND}, grouping={settings.RECONCILE_GROUP_BY})"
    )
    return ServiceContainer(store=store, http_client=http_client, cache=cache, registration_service=service)
