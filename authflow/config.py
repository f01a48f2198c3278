"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
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
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./authflow.db"

    # Token signing (one secret per token class)
    access_token_secret: str = "change-this-access-secret-minimum-32-characters"
    refresh_token_secret: str = "change-this-refresh-secret-minimum-32-characters"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 31

    # Recovery flows
    reset_token_expire_hours: int = 24
    bcrypt_rounds: int = 12
    reset_password_url: str = "http://localhost:3000/reset"
    verify_email_url: str = "http://localhost:3000/verify"
    oauth_success_redirect_url: str = "http://localhost:3000"

    # Refresh cookie
    refresh_cookie_name: str = "jwt"
    cookie_secure: bool = True

    # Email
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = "noreply@example.com"
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "authflow"
    version: str = "1.0.0"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite default
        "http://127.0.0.1:3000",
    ]

    # Rate limiting
    rate_limit_auth_per_minute: int = 10   # per IP for login/forgot/reset
    rate_limit_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
