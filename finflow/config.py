"""
Configuration for the finance tracker.

Uses pydantic-settings so every value can come from a ``FINFLOW_*``
environment variable or a ``.env`` file. Engine functions never read these
settings themselves; the UI and the store pass the values in.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_prefix="FINFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_path: str = Field(
        default="data/state.json",
        description="Where the state document is saved after every change",
    )
    seed_path: str = Field(
        default="data/seed.json",
        description="Document used when no saved state exists yet",
    )
    access_pin: str = Field(
        default="1234",
        description="Shared PIN for the UI gate",
    )
    currency: str = Field(default="BRL", description="Display currency code")
    history_days: int = Field(
        default=15,
        ge=1,
        le=366,
        description="Days shown in the daily income/expense chart",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {v!r}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload.
    """
    return Settings()
