"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    ``admin_password`` has no default: a missing or blank value fails
    validation and the process refuses to start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Linkly"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Database (single writer, single process)
    database_url: str = "sqlite+aiosqlite:///./linkly.db"
    auto_create_tables: bool = True

    # Public URLs
    base_url: str = "http://localhost:3000"
    root_redirect_url: str = "https://example.com"

    # Security
    admin_password: str = Field(min_length=1)
    session_duration_hours: int = Field(default=24, ge=1)
    session_cookie_secure: bool = False
    login_failure_delay_seconds: float = Field(default=0.5, ge=0)
    cors_origins: list[str] = ["http://localhost:3000"]

    # Geolocation (ip-api.com compatible endpoint)
    geo_lookup_enabled: bool = True
    geo_api_url: str = "http://ip-api.com/json"
    geo_lookup_timeout_seconds: float = Field(default=3.0, gt=0)
    geo_failure_ttl_seconds: float = Field(default=300.0, ge=0)

    # Click ingestion
    click_queue_size: int = Field(default=1000, ge=1)
    click_workers: int = Field(default=4, ge=1)
    click_drain_timeout_seconds: float = Field(default=5.0, ge=0)

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"

    # Observability
    sentry_dsn: str = ""
    otlp_endpoint: str = ""

    @field_validator("admin_password")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        """Reject whitespace-only secrets."""
        if not v.strip():
            raise ValueError("ADMIN_PASSWORD must not be empty")
        return v

    @field_validator("base_url", "root_redirect_url", "geo_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
