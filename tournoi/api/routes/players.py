"""Players endpoint."""
from fastapi import APIRouter, Depends, Query, Request

from tournoi.api.dependencies import get_registration_service
from tournoi.core.limiter import DEFAULT_LIMIT, limiter
from tournoi.models.player import PlayersResponse
from tournoi.services.registrations.service import RegistrationService
from tournoi.utils.formatters import SortDirection, SortKey, sort_players

router = APIRouter(prefix="/players", tags=["players"])


@router.get("", response_model=PlayersResponse)
@limiter.limit(DEFAULT_LIMIT)
async def get_players(
    request: Request,
    sort: SortKey = Query(SortKey.LAST_NAME, description="Sort key"),
    direction: SortDirection = Query(SortDirection.ASC, description="Sort direction"),
    service: RegistrationService = Depends(get_registration_service),
) -> PlayersResponse:
    """
    Registered players, served from cache.

    Never calls HelloAsso: when the cache is cold the response carries a
    warning and the next refresh fills it.
    """
    response = await service.get_players()
    response.players = sort_players(response.players, sort, direction)
    return response
