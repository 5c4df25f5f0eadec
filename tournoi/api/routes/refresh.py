"""Manual refresh endpoint."""
from fastapi import APIRouter, Depends, Request

from tournoi.api.dependencies import get_registration_service
from tournoi.core.limiter import DEFAULT_LIMIT, limiter
from tournoi.models.player import RefreshResponse
from tournoi.services.registrations.service import RegistrationService

router = APIRouter(prefix="/refresh", tags=["refresh"])


@router.post("", response_model=RefreshResponse)
@limiter.limit(DEFAULT_LIMIT)
async def refresh(
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
) -> RefreshResponse:
    """
    Re-fetch registrations from HelloAsso and rebuild the cache.

    Allowed once per minute; earlier calls get 429 with ``retryAfter``.
    """
    return await service.refresh()
