"""
FFTT Smartping client: license number -> federation ranking.

Lookups are cached for ``RANKING_CACHE_TTL`` (24h by default). Unknown
licenses are cached too, as the ``NOT_FOUND`` sentinel, so a missing
player costs one request per day instead of one per refresh.
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import httpx

from tournoi.core import metrics
from tournoi.core.errors import ApiError, ErrorKind, error_from_response, error_from_transport
from tournoi.core.logging import get_logger
from tournoi.core.retry import with_retry
from tournoi.models.fftt import FFTTApiResponse, FFTTJoueur, PlayerRanking
from tournoi.services.core.cache import CacheKeys, TTLCache
from tournoi.services.fftt.signing import signed_params
from tournoi.utils.validators import parse_leading_int

logger = get_logger(__name__)

FFTT_API_BASE = "https://apiv2.fftt.com/mobile/pxml"

NOT_FOUND = "NOT_FOUND"
BATCH_SIZE = 10
DEFAULT_POINTS = 500  # federation floor, used when "point" is not a number


def to_ranking(joueur: FFTTJoueur) -> PlayerRanking:
    points = parse_leading_int(joueur.point)
    return PlayerRanking(
        license_number=joueur.licence,
        first_name=joueur.prenom,
        last_name=joueur.nom,
        club=joueur.club,
        club_code=joueur.nclub,
        points=points or DEFAULT_POINTS,
        category=joueur.cat,
        gender=joueur.sexe,
    )


class RankingClient:
    """
    Cached federation lookups.

    Args:
        serial: Smartping application serial (``FFTT_API_ID``)
        password: Smartping application key (``FFTT_API_KEY``)
        http_client: Shared httpx client
        cache: Shared TTL cache
        cache_ttl: Lifetime of cached lookups, found or not
        now: Local-time clock used for request signatures
        sleep: Backoff sleep passed to the retry wrapper (tests)
    """

    def __init__(
        self,
        serial: str,
        password: str,
        http_client: httpx.AsyncClient,
        cache: TTLCache,
        cache_ttl: int = 86400,
        api_base: str = FFTT_API_BASE,
        now: Callable[[], datetime] = datetime.now,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.serial = serial
        self.password = password
        self.http = http_client
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.api_base = api_base.rstrip("/")
        self.now = now
        self.sleep = sleep

    async def _fetch(self, endpoint: str, params: Dict[str, str]) -> dict:
        if not self.serial or not self.password:
            raise ApiError.bad_request("FFTT API credentials not configured")

        query = {**signed_params(self.serial, self.password, self.now()), **params}

        async def call() -> dict:
            try:
                response = await self.http.get(
                    f"{self.api_base}/{endpoint}",
                    params=query,
                    headers={"Accept": "application/json"},
                )
            except httpx.RequestError as e:
                metrics.record_upstream("fftt", "transport_error")
                raise error_from_transport(e, "FFTT") from e

            if response.is_error:
                metrics.record_upstream("fftt", str(response.status_code))
                raise error_from_response(response, "FFTT", "FFTT_API_ERROR")

            metrics.record_upstream("fftt", "ok")
            return response.json()

        return await with_retry(call, sleep=self.sleep)

    async def lookup(self, license_number: str) -> Optional[PlayerRanking]:
        """
        Federation record for one license, or None when the license is unknown.

        Raises:
            ApiError: Upstream failures other than "not found"
        """
        cache_key = CacheKeys.fftt_player(license_number)

        cached = await self.cache.get(cache_key)
        if cached == NOT_FOUND:
            metrics.ranking_lookups_total.labels(result="cached_not_found").inc()
            return None
        if cached:
            metrics.ranking_lookups_total.labels(result="cache_hit").inc()
            return PlayerRanking.model_validate(cached)

        try:
            payload = await self._fetch("xml_joueur.php", {"licence": license_number})
        except ApiError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                return await self._remember_not_found(cache_key, license_number)
            raise

        response = FFTTApiResponse.model_validate(payload)
        if not response.liste:
            return await self._remember_not_found(cache_key, license_number)

        ranking = to_ranking(response.liste[0])
        await self.cache.set(cache_key, ranking.model_dump(by_alias=True), self.cache_ttl)
        metrics.ranking_lookups_total.labels(result="fetched").inc()
        return ranking

    async def _remember_not_found(self, cache_key: str, license_number: str) -> None:
        logger.info(f"License {license_number} unknown to FFTT")
        await self.cache.set(cache_key, NOT_FOUND, self.cache_ttl)
        metrics.ranking_lookups_total.labels(result="not_found").inc()
        return None

    async def _safe_lookup(self, license_number: str) -> Tuple[str, Optional[PlayerRanking], bool]:
        try:
            return license_number, await self.lookup(license_number), False
        except Exception as e:
            logger.error(f"FFTT lookup failed for license {license_number}: {e}")
            metrics.ranking_lookups_total.labels(result="failed").inc()
            return license_number, None, True

    async def lookup_many_detailed(
        self, license_numbers: Iterable[str]
    ) -> Tuple[Dict[str, Optional[PlayerRanking]], List[str]]:
        """
        Look up many licenses, ``BATCH_SIZE`` at a time.

        Lookups inside a batch run concurrently; batches run one after the
        other. A failed lookup maps to None and is listed in the second
        element of the result.

        Returns:
            (results keyed by license, licenses whose lookup failed)

        Raises:
            ApiError: BAD_REQUEST when credentials are not configured
        """
        unique = list(dict.fromkeys(lic for lic in license_numbers if lic))
        if unique and (not self.serial or not self.password):
            raise ApiError.bad_request("FFTT API credentials not configured")

        results: Dict[str, Optional[PlayerRanking]] = {}
        failed: List[str] = []

        for start in range(0, len(unique), BATCH_SIZE):
            batch = unique[start:start + BATCH_SIZE]
            outcomes = await asyncio.gather(*(self._safe_lookup(lic) for lic in batch))
            for license_number, ranking, did_fail in outcomes:
                results[license_number] = ranking
                if did_fail:
                    failed.append(license_number)

        if failed:
            logger.warning(f"FFTT lookups failed for {len(failed)}/{len(unique)} licenses")
        return results, failed

    async def lookup_many(self, license_numbers: Iterable[str]) -> Dict[str, Optional[PlayerRanking]]:
        results, _ = await self.lookup_many_detailed(license_numbers)
        return results
