"""
Core Configuration Module
Uses pydantic-settings for environment variable management.
All secrets loaded from .env file - NEVER hardcode secrets.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    project_name: str = "Fleet Inventory"
    environment: str = Field(
        default="development",
        description="development | staging | production | testing",
    )
    debug: bool = Field(default=False, description="Enable debug mode (ignored in production)")
    api_prefix: str = "/api"
    app_version: str = Field(default="1.0.0", description="Application version")

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://fleet_user:fleet_password@db:5432/fleet_inventory",
        description="Full database URL",
    )
    db_pool_size: int = Field(default=20, description="SQLAlchemy connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_echo: bool = Field(default=False, description="Echo SQL queries")
    run_db_init: bool = Field(default=False, description="Create tables on startup")

    # CORS
    cors_origins: str = Field(default="http://localhost:5173", description="Allowed CORS origins")

    # Business rules
    max_devices_per_gateway: int = Field(
        default=10,
        ge=1,
        description="Maximum number of devices attached to a single gateway",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def async_database_url(self) -> str:
        """Normalize the configured URL to an async driver."""
        url = self.database_url
        if url.startswith("sqlite"):
            if "+aiosqlite" not in url:
                url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return url
        # Heroku/Render style URLs come as postgres://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")

    @property
    def is_sqlite_memory(self) -> bool:
        url = self.async_database_url
        return self.is_sqlite and (":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
