"""
Application configuration module.

Provides centralized, environment-safe configuration management
with sensible defaults for development and testing.
"""

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_INSECURE_SECRET = "change-me-in-production-please-32-chars"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables
    or a local ``.env`` file.
    """

    # Application metadata
    APP_NAME: str = "Consultancy Admin API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./consultancy.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # JWT
    SECRET_KEY: str = _INSECURE_SECRET
    ALGORITHM: str = "HS256"
    ISSUER: str = "consultancy-admin"
    AUDIENCE: str = "consultancy-admin-clients"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Account protection
    MAX_LOGIN_ATTEMPTS: int = Field(default=5, ge=1)
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: int = Field(default=10, ge=1)

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_METHODS: str = "GET,POST,PATCH,DELETE,OPTIONS"
    CORS_HEADERS: str = "Authorization,Content-Type"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @staticmethod
    def _split(value: str) -> list[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return self._split(self.CORS_ORIGINS)

    @property
    def cors_methods_list(self) -> list[str]:
        return self._split(self.CORS_METHODS)

    @property
    def cors_headers_list(self) -> list[str]:
        return self._split(self.CORS_HEADERS)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def validate_for_production(self) -> None:
        """
        Fail fast on settings that must never reach production.

        Raises:
            RuntimeError: If the secret key is the development default
                or the database is SQLite.
        """
        if self.ENVIRONMENT != "production":
            return
        if self.SECRET_KEY == _INSECURE_SECRET or len(self.SECRET_KEY) < 32:
            raise RuntimeError("SECRET_KEY must be set to a strong value in production.")
        if self.is_sqlite:
            raise RuntimeError("DATABASE_URL must point to PostgreSQL in production.")


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings instance.
    """
    loaded = Settings()
    logger.info(f"Settings loaded: app_name={loaded.APP_NAME}, environment={loaded.ENVIRONMENT}")
    return loaded


settings = get_settings()
