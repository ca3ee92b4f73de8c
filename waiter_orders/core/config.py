"""
Waiter Ledger Configuration

Every knob of the ledger comes from the environment (or a .env file).
Two families of modes:
    - DEVELOPMENT: Uses the in-process mock kitchen (no backend needed)
    - STAGING / PRODUCTION: Talks to the real kitchen backend over HTTP

The ENV_MODE variable controls which kitchen service is instantiated, and
STORAGE_BACKEND controls where the per-waiter ledger snapshot is kept.

Usage:
    from waiter_orders.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Use the mock kitchen
    else:
        # Use the HTTP kitchen backend
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Which kitchen backend the process talks to.

    Attributes:
        DEVELOPMENT: Local testing with the mock kitchen
        PRODUCTION: Live restaurant backend
        STAGING: Pre-production backend
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class StorageBackend(str, Enum):
    """Where ledger snapshots are persisted."""
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Ledger settings.

    Field names map to upper-case environment variables (API_BASE_URL, ...).

    Attributes:
        env_mode: development (mock kitchen), staging or production (HTTP kitchen)
        debug: Enable verbose logging

        # Kitchen backend
        api_base_url: Base URL of the restaurant API
        api_timeout_seconds: Per-request timeout for backend calls

        # Ledger persistence
        storage_backend: memory, file or redis
        redis_url: Redis connection string (redis backend)
        data_directory: Snapshot directory (file backend)
        storage_key_prefix: Prefix of the identity-scoped snapshot key
        storage_lock_timeout: Seconds to wait for a snapshot file lock

        # Ordering
        order_source: Value sent as "source" with every submission
        table_poll_interval_seconds: How often the table list is refreshed
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="development, staging or production"
    )
    debug: bool = Field(
        default=False,
        description="Log at DEBUG level"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Waiter Order Ledger",
        description="Name shown by the stub backend"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # ==========================================================================
    # KITCHEN BACKEND
    # ==========================================================================

    api_base_url: Optional[str] = Field(
        default=None,
        description="Restaurant API base URL (e.g. http://host/restaurant/public/api)"
    )
    api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single backend request"
    )

    # ==========================================================================
    # LEDGER PERSISTENCE
    # ==========================================================================

    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Snapshot store: memory, file or redis"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the redis snapshot store"
    )
    data_directory: str = Field(
        default="data",
        description="Directory for snapshot files"
    )
    storage_key_prefix: str = Field(
        default="waiterOrders_",
        description="Prefix for identity-scoped snapshot keys"
    )
    storage_lock_timeout: int = Field(
        default=10,
        description="Seconds to wait for a snapshot file lock"
    )

    # ==========================================================================
    # ORDERING
    # ==========================================================================

    order_source: str = Field(
        default="waiter",
        description="Submission source tag expected by the kitchen"
    )
    table_poll_interval_seconds: float = Field(
        default=7.0,
        description="Refresh interval of the table list"
    )

    # ==========================================================================
    # MOCK KITCHEN
    # ==========================================================================

    mock_failure_rate: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Probability of a simulated backend failure"
    )
    mock_min_latency: float = Field(default=0.1, ge=0.0)
    mock_max_latency: float = Field(default=0.4, ge=0.0)

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Accept mode names in any case."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: str) -> StorageBackend:
        """Convert string to StorageBackend enum."""
        if isinstance(v, StorageBackend):
            return v
        try:
            return StorageBackend(v.lower())
        except ValueError:
            valid = [e.value for e in StorageBackend]
            raise ValueError(f"Invalid storage_backend. Must be one of: {valid}")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return v.rstrip("/")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Mock kitchen mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Live restaurant backend."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if the real kitchen backend should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Settings a staging or production deployment cannot run without.

        Returns:
            Names of the missing environment variables
        """
        missing = []

        if self.use_real_services:
            if not self.api_base_url:
                missing.append("API_BASE_URL")
            if self.storage_backend == StorageBackend.MEMORY:
                missing.append("STORAGE_BACKEND")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings instance.

    Settings are loaded once per process; call ``get_settings.cache_clear()``
    after changing the environment (tests do this).

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Send log records to stdout in one column layout.

    Args:
        level: Root level; DEBUG=true forces logging.DEBUG

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-32s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # HTTP and lock chatter only above WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("waiter_orders")

