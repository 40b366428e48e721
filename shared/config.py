"""
Shared configuration management for the Tasks service.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/tasks")
    redis_socket_timeout: float = Field(default=5.0, gt=0)

    # Storage / caching
    task_store: Literal["postgres", "memory"] = Field(default="postgres")
    cache_backend: Literal["redis", "memory"] = Field(default="redis")
    cache_use_ttl: bool = Field(default=True)
    cache_list_ttl_seconds: int = Field(default=3600, ge=1)
    cache_item_ttl_seconds: int = Field(default=60, ge=1)


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
