"""
Application configuration with environment-specific secrets management.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Required secrets for production:
- HELLOASSO_CLIENT_ID / HELLOASSO_CLIENT_SECRET
- HELLOASSO_ORGANIZATION_SLUG / HELLOASSO_FORM_SLUG
- FFTT_API_ID / FFTT_API_KEY
"""
import os
import logging
from pathlib import Path
from typing import Optional, Literal
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

# Project root (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "Tournament Registrations API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    # HelloAsso (registration platform, OAuth2 client credentials)
    HELLOASSO_CLIENT_ID: str = ""
    HELLOASSO_CLIENT_SECRET: str = ""
    HELLOASSO_ORGANIZATION_SLUG: str = ""
    HELLOASSO_FORM_SLUG: str = ""

    # FFTT Smartping (federation rankings)
    FFTT_API_ID: str = ""
    FFTT_API_KEY: str = ""

    # Outbound HTTP
    HTTP_TIMEOUT: float = 30.0

    # Cache
    KV_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: Optional[str] = None
    CACHE_TTL: int = 600  # players and stats, 10 minutes
    RANKING_CACHE_TTL: int = 86400  # federation data changes slowly

    # Refresh
    REFRESH_RATE_LIMIT_SECONDS: int = 60
    REFRESH_INTERVAL_SECONDS: int = 60
    SCHEDULER_ENABLED: bool = True

    # Reconciliation: "email" groups repeat registrants, "order" is the legacy one-player-per-order mode
    RECONCILE_GROUP_BY: Literal["email", "order"] = "email"
    OVERRIDES_FILE: str = str(PROJECT_ROOT / "data" / "overrides.json")

    # Per-client HTTP rate limiting (slowapi)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE: Literal["memory", "redis"] = "memory"

    # CORS - comma-separated string for env var parsing
    CORS_ORIGINS_STR: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get CORS origins with environment-aware defaults."""
        if self.CORS_ORIGINS_STR:
            origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
            if origins:
                if self.is_production() and "*" in origins:
                    logger.warning(
                        "Wildcard CORS origins (*) are not allowed in production. "
                        "Set explicit origins in CORS_ORIGINS_STR."
                    )
                    return []
                return origins

        if self.is_production():
            logger.warning("CORS_ORIGINS_STR not set in production, cross-origin requests are disabled.")
            return []

        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that required secrets are set for the current environment.

        Returns:
            List of missing setting names (empty if all present)
        """
        missing = []

        for name in (
            "HELLOASSO_CLIENT_ID",
            "HELLOASSO_CLIENT_SECRET",
            "HELLOASSO_ORGANIZATION_SLUG",
            "HELLOASSO_FORM_SLUG",
            "FFTT_API_ID",
            "FFTT_API_KEY",
        ):
            if not getattr(self, name):
                missing.append(name)

        # Redis URL is required as soon as anything is stored in Redis
        uses_redis = self.KV_BACKEND == "redis" or (
            self.RATE_LIMIT_ENABLED and self.RATE_LIMIT_STORAGE == "redis"
        )
        if uses_redis and not self.REDIS_URL:
            missing.append("REDIS_URL")

        return missing


def _load_env_file() -> Path:
    """
    Pick the environment file for the current ENVIRONMENT.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT}
    2. .env
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
        return default_env

    logger.debug(f"No environment file found for '{environment}' (checked .env.{environment}, .env)")
    return default_env


_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = ConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()


missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required settings for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing settings: {', '.join(missing_secrets)}. "
            f"Set these environment variables in .env.production"
        )
