"""
Configuration settings for devstats.

Uses Pydantic Settings to load environment variables for storage locations,
the aggregation cadence and logging.
"""
from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Storage
    data_dir: Path = Field(Path("."), alias="DEVSTATS_DATA_DIR")
    db_filename: str = Field("devstats.db", alias="DEVSTATS_DB_FILENAME")
    anon_db_filename: str = Field("devstats_anon.db", alias="DEVSTATS_ANON_DB_FILENAME")
    store_backend: Literal["sqlite", "file"] = Field("sqlite", alias="DEVSTATS_STORE_BACKEND")
    strict_reads: bool = Field(False, alias="DEVSTATS_STRICT_READS")

    # Aggregation
    interval_minutes: int = Field(10, gt=0, alias="DEVSTATS_INTERVAL_MINUTES")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def db_path(self) -> Path:
        """Database holding raw telemetry tables."""
        return self.data_dir / self.db_filename

    @property
    def anon_db_path(self) -> Path:
        """Database holding anonymized aggregate tables."""
        return self.data_dir / self.anon_db_filename

    @property
    def interval_size(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
