"""Application settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TOKEN_TTL_SECONDS = 30 * 24 * 60 * 60


class Settings(BaseSettings):
    """Core configuration for the webhook sink."""

    model_config = SettingsConfigDict(env_file=(".env", "env.example"), env_file_encoding="utf-8")

    env: Literal["development", "staging", "production"] = "development"
    app_name: str = "webhook-sink"
    host: str = "0.0.0.0"
    port: int = 8080

    redis_url: str = "redis://localhost:6379/0"
    redis_connect_timeout_seconds: float = 3.0
    redis_socket_timeout_seconds: float = 3.0
    store_operation_timeout_seconds: float = 5.0

    log_level: str = "INFO"
    # aiohttp rejects larger bodies; they are captured as unparseable.
    client_max_size_bytes: int = 10 * 1024 * 1024

    key_prefix: str = "webhook:"
    token_ttl_seconds: int = TOKEN_TTL_SECONDS

    otel_exporter_endpoint: AnyHttpUrl | None = None

    # Background worker
    worker_interval_seconds: float = 300.0
    orphan_sweep_enabled: bool = True

    # Use a string field to avoid JSON parsing by pydantic-settings
    cors_allowed_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        alias="CORS_ALLOWED_ORIGINS",
    )

    # This field is populated by the validator, not from env vars
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        validation_alias="__cors_allowed_origins_internal__",  # Use a non-existent alias to prevent env parsing
    )

    @model_validator(mode="after")
    def parse_cors_origins(self) -> "Settings":
        """Parse CORS origins from comma-separated string after model initialization."""
        value = self.cors_allowed_origins_str
        if value:
            self.cors_allowed_origins = [
                origin.strip() for origin in value.split(",") if origin.strip()
            ]
        return self


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
