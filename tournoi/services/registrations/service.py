"""
Registration service: the read, refresh, scheduled-refresh and stats flows.

Pipeline (refresh and scheduled job):
1. Fetch every line item of the HelloAsso form
2. Reconcile items into players
3. Enrich players with FFTT rankings (club, club code, points)
4. Apply manual overrides
5. Write the players cache and its last-known-good copy

Reads never call upstream APIs. When the players cache has expired they
serve the last-known-good snapshot with a warning, and an empty list with
a warning when nothing has ever been fetched.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tournoi.core import metrics
from tournoi.core.errors import ApiError
from tournoi.core.logging import get_logger
from tournoi.models.player import Player, PlayersResponse, PlayersSnapshot, RefreshResponse
from tournoi.models.stats import StatsResponse, TournamentStats
from tournoi.services.core.cache import CacheKeys, TTLCache
from tournoi.services.core.rate_limiter import RateLimiter
from tournoi.services.fftt.client import RankingClient
from tournoi.services.helloasso.client import HelloAssoClient
from tournoi.services.registrations.overrides import OverrideStore, apply_overrides
from tournoi.services.registrations.reconciler import RegistrationReconciler
from tournoi.services.registrations.stats import compute_stats

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

STALE_WARNING = "Showing cached data: the latest refresh did not complete"
EMPTY_WARNING = "No registration data available yet: a refresh is pending"
ENRICHMENT_WARNING = "Club and points data could not be retrieved for some players"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate(model: Type[M], raw: Any) -> Optional[M]:
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Discarding unreadable cached {model.__name__}: {e}")
        return None


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class RegistrationService:
    """
    Orchestrates upstream clients, cache and overrides.

    Args:
        helloasso: Registration platform client
        rankings: Federation ranking client
        cache: Shared TTL cache
        overrides: Source of manual corrections
        reconciler: Item -> player reconciler
        cache_ttl: Lifetime of the players and stats cache entries
        refresh_window: Minimum seconds between two manual refreshes
        now: Clock for ``lastUpdated``/``timestamp`` fields
    """

    def __init__(
        self,
        helloasso: HelloAssoClient,
        rankings: RankingClient,
        cache: TTLCache,
        overrides: OverrideStore,
        reconciler: Optional[RegistrationReconciler] = None,
        cache_ttl: int = 600,
        refresh_window: int = 60,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.helloasso = helloasso
        self.rankings = rankings
        self.cache = cache
        self.overrides = overrides
        self.reconciler = reconciler or RegistrationReconciler()
        self.rate_limiter = RateLimiter(cache)
        self.cache_ttl = cache_ttl
        self.refresh_window = refresh_window
        self.now = now

    # ── Reads ────────────────────────────────────────────────────────

    async def _current_players(self) -> Tuple[Optional[PlayersSnapshot], bool]:
        """Players snapshot with overrides applied, and whether it is fresh."""
        snapshot = _validate(PlayersSnapshot, await self.cache.get(CacheKeys.PLAYERS))
        fresh = snapshot is not None

        if snapshot is None:
            snapshot = _validate(PlayersSnapshot, await self.cache.get_raw(CacheKeys.PLAYERS_LAST_GOOD))
            if snapshot is None:
                return None, False
            logger.warning("Players cache expired, serving last known good snapshot")

        overrides = await self.overrides.load()
        snapshot.players = apply_overrides(snapshot.players, overrides)
        return snapshot, fresh

    async def get_players(self) -> PlayersResponse:
        snapshot, fresh = await self._current_players()

        if snapshot is None:
            logger.info("No players data cached yet")
            return PlayersResponse(players=[], last_updated=self.now(), warning=EMPTY_WARNING, from_cache=False)

        return PlayersResponse(
            players=snapshot.players,
            last_updated=snapshot.last_updated,
            warning=snapshot.warning if fresh else STALE_WARNING,
            from_cache=True,
        )

    async def get_stats(self) -> StatsResponse:
        """
        Tournament statistics.

        Fresh stats come from the ``stats`` cache or are computed from fresh
        players and cached. Without fresh players the last-known-good stats
        are served with a warning, or stats computed from whatever players
        are available.
        """
        cached = _validate(TournamentStats, await self.cache.get(CacheKeys.STATS))
        if cached is not None:
            return StatsResponse.model_validate({**cached.model_dump(), "from_cache": True})

        snapshot, fresh = await self._current_players()

        if fresh:
            stats = compute_stats(snapshot.players, self.now())
            payload = _dump(stats)
            await self.cache.set(CacheKeys.STATS, payload, self.cache_ttl)
            await self.cache.set_raw(CacheKeys.STATS_LAST_GOOD, payload)
            return StatsResponse.model_validate({**stats.model_dump(), "from_cache": False})

        last_good = _validate(TournamentStats, await self.cache.get_raw(CacheKeys.STATS_LAST_GOOD))
        if last_good is not None:
            return StatsResponse.model_validate(
                {**last_good.model_dump(), "from_cache": True, "warning": STALE_WARNING}
            )

        players = snapshot.players if snapshot else []
        stats = compute_stats(players, self.now())
        return StatsResponse.model_validate({
            **stats.model_dump(),
            "from_cache": False,
            "warning": STALE_WARNING if snapshot else EMPTY_WARNING,
        })

    # ── Refresh ──────────────────────────────────────────────────────

    async def refresh(self) -> RefreshResponse:
        """
        Manual refresh, at most once per ``refresh_window`` seconds.

        Raises:
            ApiError: RATE_LIMITED when called too soon, or any upstream
                ApiError raised by the pipeline
        """
        decision = await self.rate_limiter.check_and_mark(CacheKeys.REFRESH_RATE_LIMIT, self.refresh_window)
        if not decision.allowed:
            seconds = decision.retry_after
            raise ApiError.rate_limited(
                f"Please wait {seconds} second{'s' if seconds > 1 else ''} before refreshing",
                retry_after=seconds,
            )

        try:
            await self.cache.delete_many([CacheKeys.PLAYERS, CacheKeys.STATS])
            snapshot = await self._run_pipeline()
        except ApiError as e:
            logger.error(f"Refresh failed: {e.message}", extra={"error_code": e.code})
            metrics.record_refresh("manual", False)
            raise
        except Exception as e:
            logger.error(f"Refresh failed: {e}", exc_info=True)
            metrics.record_refresh("manual", False)
            return RefreshResponse(
                success=False,
                message="Error while refreshing registration data",
                timestamp=self.now(),
            )

        metrics.record_refresh("manual", True, len(snapshot.players))
        return RefreshResponse(
            success=True,
            message=f"Data refreshed successfully ({len(snapshot.players)} players)",
            timestamp=self.now(),
        )

    async def run_scheduled_refresh(self) -> Dict[str, Any]:
        """
        Periodic refresh: same pipeline, no rate limit, never raises.

        Returns:
            ``{"success", "message", "playerCount"}`` plus ``"error"`` on failure
        """
        logger.info("Scheduled refresh starting")
        try:
            snapshot = await self._run_pipeline()
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {e}", exc_info=True)
            metrics.record_refresh("scheduled", False)
            return {
                "success": False,
                "message": "Scheduled refresh failed",
                "playerCount": 0,
                "error": str(e),
            }

        count = len(snapshot.players)
        metrics.record_refresh("scheduled", True, count)
        logger.info(f"Scheduled refresh complete: {count} players")
        return {"success": True, "message": f"Refreshed {count} players", "playerCount": count}

    async def _run_pipeline(self) -> PlayersSnapshot:
        items = await self.helloasso.get_items()
        players = self.reconciler.reconcile(items)
        players, warning = await self._enrich(players)
        players = apply_overrides(players, await self.overrides.load())

        snapshot = PlayersSnapshot(players=players, last_updated=self.now(), warning=warning)
        payload = _dump(snapshot)

        await self.cache.set(CacheKeys.PLAYERS, payload, self.cache_ttl)
        await self.cache.set_raw(CacheKeys.PLAYERS_LAST_GOOD, payload)
        # Stats are derived from players
        await self.cache.delete(CacheKeys.STATS)

        return snapshot

    async def _enrich(self, players: List[Player]) -> Tuple[List[Player], Optional[str]]:
        """
        Merge federation data into players.

        A found ranking replaces club, club code and points; players without
        a license or without a ranking keep their self-reported values.
        """
        licenses = [player.license_number for player in players if player.license_number]
        if not licenses:
            return players, None

        try:
            rankings, failed = await self.rankings.lookup_many_detailed(licenses)
        except ApiError as e:
            logger.warning(f"FFTT enrichment skipped: {e.message}")
            return players, ENRICHMENT_WARNING

        enriched = []
        for player in players:
            ranking = rankings.get(player.license_number) if player.license_number else None
            if ranking is not None:
                player = player.model_copy(update={
                    "club": ranking.club or player.club,
                    "club_code": ranking.club_code or None,
                    "official_points": ranking.points,
                })
            enriched.append(player)

        return enriched, ENRICHMENT_WARNING if failed else None
