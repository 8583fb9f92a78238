from enum import StrEnum
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from faultecho._version import __version__


class Environments(StrEnum):
    DEV = "dev"
    PROD = "prod"

    def is_production(self) -> bool:
        return self == self.PROD

    def is_development(self) -> bool:
        return self == self.DEV


class Settings(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTECHO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str | None = None
    redis_socket_timeout_seconds: float = 2.0
    env: Environments = Environments.DEV
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_format: Literal["text", "json"] = "text"
    cors_allow_origins: str = "*"
    readiness_require_redis: bool = False

    # Rolling log and bucket index tuning.
    metrics_max_retained_logs: int = Field(default=1000, ge=1)
    metrics_recent_fetch_floor: int = Field(default=500, ge=1)
    metrics_bucket_width_seconds: int = Field(default=15, ge=1)
    metrics_series_buckets: int = Field(default=20, ge=1)
    metrics_bucket_ttl_slack_seconds: int = Field(default=60, ge=0)
    metrics_reset_scan_batch: int = Field(default=500, ge=1)

    # Echo endpoint defaults.
    echo_max_path_length: int = Field(default=2048, ge=1)
    echo_default_delay_ms: float = Field(default=0.0, ge=0)
    echo_default_failure_rate: float = Field(default=0.0, ge=0, le=100)

    version: str = __version__

    @field_validator("env", mode="before")
    @classmethod
    def _normalize_env_aliases(cls, value: object) -> object:
        """Allow long-form env aliases (development/production)."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            aliases = {
                "development": Environments.DEV.value,
                "production": Environments.PROD.value,
            }
            return aliases.get(normalized, normalized)
        return value

    @property
    def is_production(self) -> bool:
        return self.env.is_production()

    @property
    def is_development(self) -> bool:
        return self.env.is_development()

    @property
    def cors_allow_origins_list(self) -> list[str]:
        """Parse comma-delimited CORS origins into a list."""
        origins = [origin.strip() for origin in self.cors_allow_origins.split(",")]
        cleaned = [origin for origin in origins if origin]
        return cleaned or ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
