"""
Shared configuration management for the paginated relay.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Upstream
    upstream_base_url: str = "https://api.github.com"
    upstream_timeout_seconds: float = 30.0

    # Read once at startup; constant for the process lifetime
    default_authorization: Optional[str] = None

    # Response cache
    cache_max_entries: int = 1024

    @field_validator("cache_max_entries")
    @classmethod
    def _check_capacity(cls, value: int) -> int:
        if value < 1:
            raise ValueError("RELAY_CACHE_MAX_ENTRIES must be at least 1")
        return value

    @field_validator("default_authorization")
    @classmethod
    def _blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "RELAY_PORT", "port"))
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int = 3000, **overrides) -> ServiceConfig:
    """Get configuration for a specific service.

    ``port`` is only a fallback: the ``PORT`` environment variable wins.
    """
    config = ServiceConfig(service_name=service_name, **overrides)
    if "port" not in overrides and "port" not in config.model_fields_set:
        config.port = port
    return config
