"""Application configuration."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_CATALOG_URL = "https://www.fruityvice.com/api/fruit/all"


def default_photo_dir() -> Path:
    """Return the default durable directory for attachment photos."""
    return Path.home() / ".fruit_catalog" / "photos"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_timeout_seconds: float = 30.0
    photo_dir: Path = default_photo_dir()
    jpeg_quality: int = 90
    report_include_unattached: bool = False
    report_author: str = "Fruit Catalog"
    report_title: str = "Fruits Report"
    report_timezone: str = "UTC"
    location_enabled: bool = True
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("report_timezone")
    @classmethod
    def check_report_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return value
