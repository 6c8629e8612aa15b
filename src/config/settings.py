"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import DEFAULT_RECIPROCAL_THRESHOLD


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Optional environment variables:
        - HOST: Server host (default: 0.0.0.0)
        - PORT: Server port (default: 8080)
        - STORAGE_BACKEND: auto, memory or redis (default: auto)
        - REDIS_URL: Redis connection URL (default: redis://localhost:6379/0)
        - KEY_PREFIX: Prefix prepended to every storage key
        - ENVIRONMENT: Environment name (development, staging, production)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: Optional[bool] = Field(
        default=None,
        description="Emit JSON logs (defaults to True in production)"
    )

    @property
    def use_json_logs(self) -> bool:
        if self.json_logs is None:
            return self.is_production
        return self.json_logs

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level.upper()

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    workers: int = Field(default=4, description="Number of uvicorn workers")

    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    storage_backend: str = Field(
        default="auto",
        description="Posting-list store: auto, memory or redis"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_enabled: bool = Field(
        default=False,
        description="Use Redis when storage_backend is auto"
    )
    redis_socket_timeout_seconds: float = Field(
        default=5.0,
        description="Socket timeout for Redis commands (seconds)"
    )
    key_prefix: str = Field(
        default="",
        description="Prefix prepended to every storage key (e.g. 'recon:')"
    )
    scratch_ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="Expiry applied to per-query scratch keys in Redis"
    )
    transaction_max_retries: int = Field(
        default=32,
        ge=1,
        description="Optimistic-lock retries before a transaction gives up"
    )

    @field_validator("storage_backend", mode="before")
    @classmethod
    def parse_storage_backend(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in ("auto", "memory", "redis"):
                raise ValueError(f"storage_backend must be auto, memory or redis, got {v!r}")
        return v

    # ==========================================================================
    # Matching
    # ==========================================================================
    reciprocal_threshold: float = Field(
        default=DEFAULT_RECIPROCAL_THRESHOLD,
        ge=0.0,
        description="Reciprocal scores must be strictly above this to be returned"
    )
    default_cardinality: int = Field(
        default=10,
        ge=0,
        description="Number of matches returned when a request omits it"
    )
    max_cardinality: int = Field(
        default=200,
        ge=1,
        description="Upper bound on matches per request"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Returns:
        Settings: The application settings instance

    Raises:
        ValidationError: If an environment variable has an invalid value
    """
    env_file = Path(__file__).parent.parent.parent / ".env"
    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.

    Args:
        **overrides: Setting values to override

    Returns:
        Settings: A new settings instance with overrides applied
    """
    test_defaults = {
        "environment": "testing",
        "debug": True,
        "storage_backend": "memory",
    }
    test_defaults.update(overrides)

    return Settings(_env_file=None, **test_defaults)
