"""FastAPI dependencies."""
from fastapi import Request

from tournoi.services.registrations.service import RegistrationService


def get_registration_service(request: Request) -> RegistrationService:
    """Dependency to get the registration service built at startup."""
    return request.app.state.registration_service
