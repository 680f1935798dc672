"""
Configuration management using Pydantic Settings.
Environment-based configuration; every field can be overridden with a
``CONDUCTOR_``-prefixed environment variable or a ``.env`` file.
"""
import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="CONDUCTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Conductor", description="Application name")
    app_version: str = Field(default="0.3.0", description="Application version")
    environment: str = Field(default="development", description="Environment: development, sandbox, production")
    debug: bool = Field(default=False, description="Debug mode")

    # API
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8300, ge=1024, le=65535, description="API port")
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")
    sse_ping_interval: float = Field(default=15.0, gt=0, description="Seconds between SSE keep-alive pings")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: json or text")

    # Dashboard environment
    square_base_url: str = Field(default="https://squareupsandbox.com", description="Dashboard base URL")
    allowed_hosts: List[str] = Field(
        default=["squareup.com", "squareupsandbox.com"],
        description="Hosts the navigation agent may operate on",
    )

    # Agent registry
    mock_fallback_enabled: bool = Field(default=True, description="Fall back to mock agents when construction fails")

    # Task dispatch
    default_task_retries: int = Field(default=2, ge=0, le=10, description="Extra attempts when an agent raises")
    default_task_timeout: float = Field(default=10.0, gt=0, description="Advisory per-operation budget in seconds")
    retry_backoff_min: float = Field(default=0.1, ge=0, description="Minimum retry backoff in seconds")
    retry_backoff_max: float = Field(default=2.0, ge=0, description="Maximum retry backoff in seconds")

    # Bulk execution
    default_batch_size: int = Field(default=5, ge=1, le=500, description="Items per concurrent batch")
    default_delay_between_batches: float = Field(default=0.0, ge=0, description="Pause between batches in seconds")

    # Workflows
    workflow_strict_dependencies: bool = Field(
        default=False,
        description="Reject forward/unknown depends_on references before execution",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of allowed values."""
        allowed = ["development", "sandbox", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        allowed = ["json", "text"]
        if v not in allowed:
            raise ValueError(f"Log format must be one of {allowed}")
        return v

    @field_validator("square_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_log_level(self) -> int:
        """Get logging level as integer."""
        return getattr(logging, self.log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
