"""HelloAsso registration platform: OAuth2 tokens and paginated form data."""
from tournoi.services.helloasso.client import HelloAssoClient, MAX_PAGES, PAGE_SIZE
from tournoi.services.helloasso.token_manager import TokenManager

__all__ = ["HelloAssoClient", "TokenManager", "MAX_PAGES", "PAGE_SIZE"]
