"""Environment-based configuration for the media processor."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediaprocessor.constants import DEFAULT_MAX_INPUT_SIZE


class Settings(BaseSettings):
    """Application settings loaded from MEDIAPROCESSOR_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIAPROCESSOR_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    log_level: str = "INFO"

    # Authentication (None = disabled)
    api_key: str | None = None

    # Storage proxy
    storage_proxy_url: str | None = None
    cf_access_client_id: str | None = None
    cf_access_client_secret: str | None = None
    storage_timeout: float = Field(default=30.0, gt=0)
    max_input_size: int = Field(default=DEFAULT_MAX_INPUT_SIZE, ge=1)

    # Concurrency
    max_concurrent: int = Field(default=2, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
