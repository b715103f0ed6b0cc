"""
Configuration loading for nearest-bart.

Loads non-secret settings from config.yaml, secrets from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator

from nearest_bart.geo import DEFAULT_BORDER_MILES, DEFAULT_REFERENCE_POINT
from nearest_bart.models import Coordinate


class AppConfig(BaseModel):
    """Application configuration. Secrets come from env vars, rest from YAML."""

    # Secrets (from environment only)
    bart_api_key: Optional[str] = None
    api_key: Optional[str] = None

    # BART settings
    bart_base_url: str = "https://api.bart.gov/api"
    request_timeout: float = Field(default=10.0, gt=0)

    # Refresh cadence advertised to clients
    refresh_interval_minutes: int = Field(default=1, ge=1)

    # Direction heuristic
    reference_point: Coordinate = DEFAULT_REFERENCE_POINT
    reference_name: str = "SF"
    border_threshold_miles: float = Field(default=DEFAULT_BORDER_MILES, ge=0)

    # Clock times are rendered in this zone
    timezone: str = "America/Los_Angeles"

    # Location cache; max age None trusts any cached fix
    location_cache_path: str = ".nearest_bart/location.json"
    location_max_age: Optional[int] = Field(default=None, ge=0)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from YAML file + environment variables.

    Args:
        config_path: Path to config.yaml. If None, reads CONFIG_PATH env var
                     (default: config.yaml in current directory).

    Returns:
        Validated AppConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    # Inject secrets from environment (never from YAML)
    config_data = {
        **raw,
        "bart_api_key": os.environ.get("BART_API_KEY"),
        "api_key": os.environ.get("API_KEY"),
    }

    return AppConfig(**config_data)
