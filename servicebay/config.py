"""
Configuration settings for the ServiceBay backend.
Uses Pydantic for type-safe configuration management.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Application
    app_name: str = "ServiceBay"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./servicebay.db"

    # Security
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # API
    api_prefix: str = "/api"

    # Stale pending jobs
    auto_cancel_enabled: bool = True
    auto_cancel_interval_minutes: int = 60
    auto_cancel_after_hours: int = 24


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
