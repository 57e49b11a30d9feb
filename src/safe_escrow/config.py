"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup, so a malformed value fails fast with a clear error message.

Usage:
    from safe_escrow.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the safe transaction admin service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database (PostgreSQL) ---
    database_url: str = (
        "postgresql+asyncpg://marketplace:marketplace_dev"
        "@localhost:5432/resale_marketplace"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Caller authentication ---
    # Tokens are HS256 JWTs issued by the marketplace auth provider.
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    admin_role: str = "ADMIN"

    # --- Escrow workflow ---
    escrow_enforce_step_order: bool = False
    list_default_limit: int = 50
    list_max_limit: int = 200

    # --- SMS ---
    sms_transport: Literal["log", "http"] = "log"
    sms_api_url: str = ""
    sms_api_key: str = ""
    sms_sender: str = ""
    sms_timeout_seconds: float = 10.0

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
