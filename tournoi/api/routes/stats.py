"""Tournament statistics endpoint."""
from fastapi import APIRouter, Depends, Request

from tournoi.api.dependencies import get_registration_service
from tournoi.core.limiter import DEFAULT_LIMIT, limiter
from tournoi.models.stats import StatsResponse
from tournoi.services.registrations.service import RegistrationService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
@limiter.limit(DEFAULT_LIMIT)
async def get_stats(
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
) -> StatsResponse:
    """Counts per category, top clubs and the daily registration timeline."""
    return await service.get_stats()
