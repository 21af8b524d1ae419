"""
Shared configuration management for the metrics push gateway.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PUSHGW_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Object storage
    storage_backend: str = Field(default="s3", description="s3 or memory")
    s3_endpoint_url: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)

    # Runtime config document (auth token and metric bucket)
    config_bucket: Optional[str] = Field(default=None)
    config_key: str = Field(default="config.yml")
    config_reload_seconds: int = Field(default=60, ge=1)

    # Used when no config bucket is set
    auth_token: str = Field(default="")
    metric_bucket: str = Field(default="")

    # Read path
    fetch_concurrency: int = Field(default=8, ge=1)


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
