from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    db_file: Path = Path("fleet.sqlite")
    fetch_timeout_seconds: float = 10.0
    default_window_days: int = 30
    max_range_years: int = 5
    default_mileage_rate_country: str = "US"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FLEET_REPORTS_",
        extra="ignore",
    )


@cache
def config() -> AppSettings:
    return AppSettings()
