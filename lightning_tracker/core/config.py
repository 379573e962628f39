"""Application configuration."""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - empty string runs the service with persistence disabled
    database_url: str = ""
    db_echo: bool = False
    run_migrations: bool = False

    @property
    def async_database_url(self) -> str:
        """Convert DATABASE_URL to async format for SQLAlchemy."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite:///"):
            url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url

    @property
    def persistence_enabled(self) -> bool:
        """Whether a database connection string is configured."""
        return bool(self.database_url.strip())

    # Weather service (OpenWeatherMap)
    weather_api_key: str = ""
    weather_api_url: str = "https://api.openweathermap.org"
    weather_timeout_seconds: float = 5.0

    @property
    def weather_enabled(self) -> bool:
        """Whether a weather credential is configured."""
        return bool(self.weather_api_key.strip())

    # CORS - stored as comma-separated string, parsed via property
    allowed_origins_str: str = "*"

    @property
    def allowed_origins(self) -> list[str]:
        """Parse allowed_origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]

    # App settings
    debug: bool = False
    environment: str = "development"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
