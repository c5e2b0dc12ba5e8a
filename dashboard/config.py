"""
Configuration loading for the commute dashboard.

Loads non-secret settings from config.yaml, the calendar feed URL and the
runtime mode from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator

DEVELOPMENT = "development"
PRODUCTION = "production"


class IntervalConfig(BaseModel):
    """Refresh cadences in seconds."""

    departures: float = Field(default=45, gt=0)
    weather: float = Field(default=300, gt=0)
    calendar: float = Field(default=300, gt=0)
    countdown: float = Field(default=60, gt=0)


class AppConfig(BaseModel):
    """Application configuration. Env-only values come first, rest from YAML."""

    # From environment only
    calendar_url: Optional[str] = None
    app_env: str = PRODUCTION

    # Station and departure filtering
    station_name: str = "Duvbo"
    destination: str = "Kungsträdgården"
    transport_modes: list[str] = Field(default_factory=lambda: ["METRO"], min_length=1)
    walk_minutes: int = Field(default=10, ge=0)
    max_departures: int = Field(default=3, ge=1)

    # Weather location
    latitude: float = Field(default=59.36, ge=-90, le=90)
    longitude: float = Field(default=17.95, ge=-180, le=180)
    timezone: str = "Europe/Stockholm"

    # Upstreams
    transit_base_url: str = "https://transport.integration.sl.se"
    weather_base_url: str = "https://api.open-meteo.com"
    relay_base_url: str = "http://127.0.0.1:8000"
    request_timeout: float = Field(default=10.0, gt=0)

    intervals: IntervalConfig = Field(default_factory=IntervalConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("transport_modes")
    @classmethod
    def normalize_transport_modes(cls, value: list[str]) -> list[str]:
        """Upstream reports modes in upper case (METRO, BUS, TRAIN)."""
        modes = [mode.strip().upper() for mode in value]
        if not all(modes):
            raise ValueError("transport_modes must not contain empty names")
        return modes

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in (DEVELOPMENT, PRODUCTION):
            raise ValueError(f"APP_ENV must be '{DEVELOPMENT}' or '{PRODUCTION}'")
        return value

    @property
    def dev_mode(self) -> bool:
        return self.app_env == DEVELOPMENT

    @property
    def calendar_enabled(self) -> bool:
        return bool(self.calendar_url)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def transit_url(self) -> str:
        """Base URL for transit calls; routed through the local relay in dev mode."""
        if self.dev_mode:
            return f"{self.relay_base_url.rstrip('/')}/api/sl"
        return self.transit_base_url.rstrip("/")

    def calendar_fetch_url(self) -> Optional[str]:
        """URL the calendar client fetches, or None if the calendar is disabled."""
        if not self.calendar_enabled:
            return None
        if self.dev_mode:
            return f"{self.relay_base_url.rstrip('/')}/api/calendar.ics"
        return self.calendar_url


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

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    # Feed URL and mode come from the environment (never from YAML)
    config_data = {
        **raw,
        "calendar_url": os.environ.get("CALENDAR_ICAL_URL") or None,
        "app_env": os.environ.get("APP_ENV", PRODUCTION),
    }

    return AppConfig(**config_data)
