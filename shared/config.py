"""
Shared configuration management for the Catalog Access Layer.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Local store
    store_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379/0"
    store_key_prefix: str = "catalog:items"

    # Remote book provider
    book_source_url: str = "http://localhost:8090"
    book_source_api_key: Optional[str] = None
    book_source_timeout_seconds: float = Field(default=10.0, gt=0)
    source_failure_threshold: int = Field(default=3, ge=1)
    source_recovery_timeout_seconds: float = Field(default=30.0, ge=0)

    # Lookup policy
    serve_stale_on_not_found: bool = True
    serve_stale_on_source_error: bool = True
    lookup_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    coalesce_lookups: bool = False
    write_back_drain_timeout_seconds: float = Field(default=5.0, ge=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
