"""
Mutabaah Service - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.

Static reference data (the activity catalog) lives next to this module in
``app.config.activity_catalog``.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "Mutabaah Service"
    app_env: str = "development"
    debug: bool = False
    secret_key: str  # Required - must be set in .env
    api_version: str = "v1"

    # ===========================================
    # DATABASE CONFIGURATION
    # ===========================================
    database_url_async: str  # Required - must be set in .env
    database_echo: bool = False
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # ===========================================
    # JWT AUTHENTICATION
    # Tokens are issued by the identity service; this service only verifies them.
    # ===========================================
    jwt_secret_key: str  # Required - must be set in .env
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # ===========================================
    # MUTABAAH REPORTING
    # ===========================================
    # Timezone used to turn attendance timestamps into calendar days
    report_timezone: str = "Asia/Jakarta"
    report_default_page_size: int = 10
    report_max_page_size: int = 100
    # Export reuses the report path with a much larger page
    export_page_size: int = 5000
    # A month only counts once the employee activated it
    require_activation_for_report: bool = True
    # Months with activity but no approval still add to the yearly target.
    # Switching this off excludes them from the target as well.
    accrue_target_for_unapproved_months: bool = True

    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:8000,http://127.0.0.1:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Export settings instance
settings = get_settings()

__all__ = [
    "settings",
    "Settings",
    "get_settings",
]
