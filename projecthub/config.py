"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings


DEV_JWT_SECRET = "dev-jwt-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"  # development, production, test
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    app_url: str = "http://localhost:3000"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 15
    jwt_refresh_token_expire_days: int = 7

    # ==========================================================================
    # Invitations & listings
    # ==========================================================================

    invite_expire_days: int = 7
    default_page_size: int = 10
    max_page_size: int = 100

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # Load demo users/projects/invites into the in-memory store at startup
    seed_on_startup: bool = False

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def validate_environment(settings: Settings | None = None) -> Settings:
    """
    Check settings that must hold before the API starts.

    Raises ValueError with every problem found.
    """
    settings = settings or get_settings()
    problems: list[str] = []

    if settings.environment not in ("development", "production", "test"):
        problems.append(f"ENVIRONMENT must be development, production or test, got {settings.environment!r}")

    if settings.is_production:
        if len(settings.jwt_secret_key) < 32:
            problems.append("JWT_SECRET_KEY must be at least 32 characters")
        if settings.jwt_secret_key == DEV_JWT_SECRET:
            problems.append("JWT_SECRET_KEY must be changed from the development default")

    if settings.invite_expire_days < 1:
        problems.append("INVITE_EXPIRE_DAYS must be positive")

    if problems:
        raise ValueError("Invalid environment configuration: " + "; ".join(problems))

    return settings


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level to the root logger."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
