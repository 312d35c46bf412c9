"""Centralised environment-driven settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings sourced from ``MAPPATH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MAPPATH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATA_DIR: str = "./data"
    OUTPUT_DIR: str = "./outputs"
    LOG_LEVEL: str = "INFO"
    DEFAULT_FRONTIER: str = "heap"
    SNAP_RADIUS: int = 10
    LOG_BUFFER: int = 500


settings = Settings()

__all__ = ["Settings", "settings"]
