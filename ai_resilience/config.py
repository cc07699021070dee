"""
Application configuration management.

Following Sandi Metz principles:
- Single Responsibility: Configuration loading and validation
- Small class: < 100 lines
- Clear naming: Descriptive property names
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class ResponseCacheConfig:
    """Response cache configuration."""

    max_entries: int = 50
    ttl_seconds: float = 7 * SECONDS_PER_DAY
    key_prefix: str = "response_cache"


@dataclass
class OfflineQueueConfig:
    """Offline queue configuration."""

    max_queue_size: int = 50
    max_retries: int = 3
    retry_delay_seconds: float = 2.0
    storage_key: str = "offline_queue"


class AppConfig(BaseSettings):
    """
    Application configuration with validation.

    Loads from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="AIResilience", description="Application name")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Redis settings
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis_db: int = Field(default=0, ge=0, le=15, description="Redis database")
    redis_password: str = Field(default="", description="Redis password")
    redis_max_connections: int = Field(default=10, ge=1, description="Max connections")
    store_namespace: str = Field(
        default="ai_resilience", min_length=1, description="Key namespace in the store"
    )

    # Response cache settings
    cache_max_entries: int = Field(default=50, ge=1, description="Max cached responses")
    cache_ttl_seconds: float = Field(
        default=7 * SECONDS_PER_DAY, gt=0, description="Cached response TTL seconds"
    )

    # Offline queue settings
    queue_max_size: int = Field(default=50, ge=1, description="Max queued requests")
    queue_max_retries: int = Field(default=3, ge=1, description="Attempts per request")
    queue_retry_delay_seconds: float = Field(
        default=2.0, ge=0.0, description="Pause between queued requests"
    )

    # Reachability probe settings
    reachability_host: str = Field(default="1.1.1.1", description="Probe host")
    reachability_port: int = Field(
        default=443, ge=1, le=65535, description="Probe port"
    )
    reachability_timeout_seconds: float = Field(
        default=3.0, gt=0, description="Probe timeout"
    )

    @property
    def redis_url(self) -> str:
        """Build Redis URL."""
        if self.redis_password:
            return (
                f"redis://:{self.redis_password}@"
                f"{self.redis_host}:{self.redis_port}/{self.redis_db}"
            )
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def response_cache_config(self) -> ResponseCacheConfig:
        """Build response cache configuration."""
        return ResponseCacheConfig(
            max_entries=self.cache_max_entries, ttl_seconds=self.cache_ttl_seconds
        )

    def offline_queue_config(self) -> OfflineQueueConfig:
        """Build offline queue configuration."""
        return OfflineQueueConfig(
            max_queue_size=self.queue_max_size,
            max_retries=self.queue_max_retries,
            retry_delay_seconds=self.queue_retry_delay_seconds,
        )


# Global configuration instance
config = AppConfig()
