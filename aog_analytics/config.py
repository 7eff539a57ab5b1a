"""Runtime settings for the CLI, the repository and the migration script."""

from __future__ import annotations

from functools import lru_cache

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    """Settings read from ``AOG_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(env_prefix="AOG_", env_file=".env", extra="ignore")

    # MongoDB
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "fleet_ops"
    events_collection: str = "aogevents"

    # Analytics
    risk_window_days: int = 30
    high_risk_threshold: float = 30.0

    log_level: str = "INFO"

    @field_validator("risk_window_days")
    @classmethod
    def _positive_window(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @field_validator("high_risk_threshold")
    @classmethod
    def _score_range(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError("must be within [0, 100]")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"must be one of {sorted(_LOG_LEVELS)}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings, raising ``ConfigurationError`` on invalid values."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid AOG analytics settings: {exc}") from exc
