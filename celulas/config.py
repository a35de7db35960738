"""
Configuration and settings for the cell-group API.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")

    # Database (Postgres in production, SQLite file in development)
    database_url: str = Field(default="sqlite+pysqlite:///./database.sqlite")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Authentication
    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_in: str = Field(default="7d")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    cors_origin: str = Field(default="http://localhost:3000")

    # Calendar day boundaries for prayer logs
    timezone: str = Field(default="America/Sao_Paulo")
    default_stats_days: int = Field(default=30, ge=1)

    log_level: str = Field(default="INFO")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
