"""Tests for config loading."""

import pytest
from pydantic import ValidationError

from dashboard.config import AppConfig, load_config


@pytest.fixture()
def valid_config_yaml(tmp_path):
    """Write a minimal valid config.yaml and return its path."""
    content = """\
station_name: "Duvbo"
destination: "Kungsträdgården"
transport_modes: ["METRO"]
walk_minutes: 8
max_departures: 4

intervals:
  departures: 30
  countdown: 15
"""
    p = tmp_path / "config.yaml"
    p.write_text(content, encoding="utf-8")
    return str(p)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CALENDAR_ICAL_URL", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)


class TestLoadConfig:
    def test_loads_valid_config(self, valid_config_yaml):
        config = load_config(valid_config_yaml)
        assert config.station_name == "Duvbo"
        assert config.destination == "Kungsträdgården"
        assert config.transport_modes == ["METRO"]
        assert config.walk_minutes == 8
        assert config.max_departures == 4
        assert config.intervals.departures == 30
        assert config.intervals.countdown == 15

    def test_defaults_applied(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("")
        config = load_config(str(p))
        assert config.walk_minutes == 10
        assert config.max_departures == 3
        assert config.timezone == "Europe/Stockholm"
        assert config.transit_base_url == "https://transport.integration.sl.se"
        assert config.intervals.departures == 45
        assert config.intervals.weather == 300
        assert config.intervals.calendar == 300
        assert config.intervals.countdown == 60

    def test_calendar_url_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("CALENDAR_ICAL_URL", "https://calendar.example/basic.ics")
        config = load_config(valid_config_yaml)
        assert config.calendar_url == "https://calendar.example/basic.ics"
        assert config.calendar_enabled is True

    def test_calendar_disabled_when_not_set(self, valid_config_yaml):
        config = load_config(valid_config_yaml)
        assert config.calendar_url is None
        assert config.calendar_enabled is False
        assert config.calendar_fetch_url() is None

    def test_empty_calendar_url_disables(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("CALENDAR_ICAL_URL", "")
        assert load_config(valid_config_yaml).calendar_enabled is False

    def test_calendar_url_not_read_from_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('calendar_url: "https://leaked.example/basic.ics"\n')
        assert load_config(str(p)).calendar_url is None

    def test_app_env_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("APP_ENV", "Development")
        config = load_config(valid_config_yaml)
        assert config.app_env == "development"
        assert config.dev_mode is True

    def test_production_by_default(self, valid_config_yaml):
        assert load_config(valid_config_yaml).dev_mode is False

    def test_invalid_app_env_raises(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("APP_ENV", "staging")
        with pytest.raises(ValidationError):
            load_config(valid_config_yaml)

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_config_path_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", valid_config_yaml)
        config = load_config()
        assert config.walk_minutes == 8

    def test_unknown_timezone_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('timezone: "Europe/Atlantis"\n')
        with pytest.raises(ValidationError, match="Unknown timezone"):
            load_config(str(p))

    def test_non_positive_interval_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("intervals:\n  departures: 0\n")
        with pytest.raises(ValidationError):
            load_config(str(p))

    def test_empty_transport_modes_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("transport_modes: []\n")
        with pytest.raises(ValidationError):
            load_config(str(p))

    def test_transport_modes_upper_cased(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('transport_modes: ["metro", " Tram "]\n')
        assert load_config(str(p)).transport_modes == ["METRO", "TRAM"]

    def test_blank_transport_mode_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('transport_modes: ["METRO", " "]\n')
        with pytest.raises(ValidationError, match="empty"):
            load_config(str(p))

    def test_negative_walk_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("walk_minutes: -1\n")
        with pytest.raises(ValidationError):
            load_config(str(p))


class TestUpstreamUrls:
    def test_production_calls_upstream_directly(self):
        config = AppConfig(
            calendar_url="https://calendar.example/basic.ics",
            transit_base_url="https://transport.integration.sl.se/",
        )
        assert config.transit_url() == "https://transport.integration.sl.se"
        assert config.calendar_fetch_url() == "https://calendar.example/basic.ics"

    def test_development_routes_through_relay(self):
        config = AppConfig(
            app_env="development",
            calendar_url="https://calendar.example/basic.ics",
            relay_base_url="http://127.0.0.1:8000/",
        )
        assert config.transit_url() == "http://127.0.0.1:8000/api/sl"
        assert config.calendar_fetch_url() == "http://127.0.0.1:8000/api/calendar.ics"

    def test_tz(self):
        assert AppConfig().tz.key == "Europe/Stockholm"
