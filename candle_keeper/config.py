"""
Configuration management using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Literal["development", "staging", "production"] = "development"
    service_name: str = "candle-keeper"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    debug: bool = False

    # Observability - Prometheus
    metrics_enabled: bool = True

    # Candle aggregation
    candle_period_seconds: int = Field(default=60, gt=0)
    candle_shift_ms: int = 0
    candle_includes_volume: bool = False
    candle_exchange: str | None = None
    candle_symbol: str | None = None

    @field_validator("candle_shift_ms")
    @classmethod
    def validate_shift(cls, v: int) -> int:
        """Bucket boundaries may only be shifted backwards."""
        if v > 0:
            raise ValueError("candle_shift_ms must be <= 0")
        return v

    @field_validator("candle_exchange", "candle_symbol", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
