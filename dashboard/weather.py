"""
Weather feed backed by Open-Meteo (no API key), plus the display theme.

`weather_theme` is a total mapping over WMO weather codes. Anything outside
the known ranges uses the cloudy day values.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from dashboard.errors import FetchError
from dashboard.models import WeatherSnapshot, WeatherTheme

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Okänd"

WEATHER_LABELS: dict[int, str] = {
    0: "Klart",
    1: "Nästan klart",
    2: "Delvis molnigt",
    3: "Mulet",
    45: "Dimma",
    48: "Dimma",
    51: "Duggregn",
    53: "Duggregn",
    55: "Duggregn",
    61: "Lätt regn",
    63: "Regn",
    65: "Kraftigt regn",
    71: "Snö",
    73: "Snö",
    75: "Snö",
    77: "Snö",
    80: "Regnbyar",
    81: "Regnbyar",
    82: "Regnbyar",
    85: "Snöbyar",
    86: "Snöbyar",
    95: "Åskväder",
    96: "Åskväder",
    99: "Åskväder",
}


def weather_label(code: int) -> str:
    return WEATHER_LABELS.get(code, UNKNOWN_LABEL)


def _gradient(*stops: tuple[str, int]) -> str:
    parts = ", ".join(f"{color} {pct}%" for color, pct in stops)
    return f"linear-gradient(180deg, {parts})"


def _theme(icon: str, top: str, gradient: str, light: bool = False) -> WeatherTheme:
    return WeatherTheme(icon=icon, top_color=top, gradient=gradient, light=light)


# (day, night) pairs for buckets whose look depends on time of day
_CLEAR = (
    _theme("clear", "#5b8def", _gradient(("#5b8def", 0), ("#87ceeb", 35), ("#e8f4fc", 100))),
    _theme("clear", "#0c1445", _gradient(("#0c1445", 0), ("#1a237e", 40), ("#283593", 100))),
)
_MAINLY_CLEAR = (
    _theme("mainly-clear", "#6b9de8", _gradient(("#6b9de8", 0), ("#90b4e8", 40), ("#c5d9f0", 100))),
    _theme("mainly-clear", "#1a237e", _gradient(("#1a237e", 0), ("#283593", 50), ("#3949ab", 100))),
)
_PARTLY_CLOUDY = (
    _theme("partly-cloudy", "#7ba3d4", _gradient(("#7ba3d4", 0), ("#9fc0e8", 35), ("#d4e4f4", 100))),
    _theme("partly-cloudy", "#263056", _gradient(("#263056", 0), ("#364a7a", 50), ("#4a5f8f", 100))),
)
_CLOUDY = (
    _theme("cloudy", "#607d8b", _gradient(("#607d8b", 0), ("#78909c", 40), ("#90a4ae", 100))),
    _theme("cloudy", "#37474f", _gradient(("#37474f", 0), ("#455a64", 50), ("#546e7a", 100))),
)
_RAIN = (
    _theme("rain", "#455a64", _gradient(("#455a64", 0), ("#546e7a", 35), ("#78909c", 100))),
    _theme("rain", "#263238", _gradient(("#263238", 0), ("#37474f", 50), ("#455a64", 100))),
)
_SHOWERS = (
    _theme("rain", "#546e7a", _gradient(("#546e7a", 0), ("#607d8b", 40), ("#78909c", 100))),
    _RAIN[1],
)

# Same look day and night
_FOG = _theme("fog", "#78909c", _gradient(("#78909c", 0), ("#90a4ae", 50), ("#b0bec5", 100)))
_SNOW = _theme(
    "snow", "#b0bec5", _gradient(("#b0bec5", 0), ("#cfd8dc", 40), ("#eceff1", 100)), light=True
)
_SNOW_SHOWERS = _theme(
    "snow", "#90a4ae", _gradient(("#90a4ae", 0), ("#b0bec5", 50), ("#eceff1", 100)), light=True
)
_THUNDER = _theme(
    "thunderstorm", "#1a237e", _gradient(("#1a237e", 0), ("#263238", 40), ("#37474f", 100))
)

# Inclusive code ranges, checked in order
_BUCKETS: list[tuple[int, int, tuple[WeatherTheme, WeatherTheme]]] = [
    (0, 0, _CLEAR),
    (1, 1, _MAINLY_CLEAR),
    (2, 2, _PARTLY_CLOUDY),
    (3, 3, _CLOUDY),
    (45, 45, (_FOG, _FOG)),
    (48, 48, (_FOG, _FOG)),
    (51, 67, _RAIN),
    (71, 77, (_SNOW, _SNOW)),
    (80, 82, _SHOWERS),
    (85, 86, (_SNOW_SHOWERS, _SNOW_SHOWERS)),
    (95, 99, (_THUNDER, _THUNDER)),
]

FALLBACK_THEME = _CLOUDY[0]
NEUTRAL_THEME = _theme("unknown", "#455a64", _gradient(("#455a64", 0), ("#546e7a", 100)))


def weather_theme(code: int, is_day: bool = True) -> WeatherTheme:
    """Visual bucket for a weather code; unknown codes fall back to cloudy."""
    for low, high, (day, night) in _BUCKETS:
        if low <= code <= high:
            return day if is_day else night
    return FALLBACK_THEME


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class WeatherSource(Protocol):
    async def fetch(self) -> WeatherSnapshot: ...


class _Current(BaseModel):
    model_config = ConfigDict(extra="ignore")

    temperature_2m: Optional[float] = None
    relative_humidity_2m: Optional[float] = None
    weather_code: Optional[int] = None
    is_day: Optional[int] = None


class _ForecastResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: Optional[_Current] = None


def snapshot_from_current(current: _Current) -> WeatherSnapshot:
    code = current.weather_code if current.weather_code is not None else 0
    return WeatherSnapshot(
        temp=current.temperature_2m,
        humidity=current.relative_humidity_2m,
        code=code,
        is_day=current.is_day != 0,
        label=weather_label(code),
    )


class OpenMeteoClient:
    """Live weather for one fixed coordinate."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        latitude: float,
        longitude: float,
        timezone: str,
        base_url: str = "https://api.open-meteo.com",
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._url = f"{base_url.rstrip('/')}/v1/forecast"
        self._params = {
            "latitude": str(latitude),
            "longitude": str(longitude),
            "current": "temperature_2m,relative_humidity_2m,weather_code,is_day",
            "timezone": timezone,
        }
        self._timeout = timeout

    async def fetch(self) -> WeatherSnapshot:
        """Fetch current conditions. Raises FetchError on any failure."""
        try:
            response = await self._http.get(
                self._url, params=self._params, timeout=self._timeout
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Weather request failed: %s %s -> %s", "GET", self._url, exc)
            raise FetchError(f"Weather: connection error: {exc}") from exc

        if response.status_code != 200:
            raise FetchError(
                f"Weather: {response.status_code}", status_code=response.status_code
            )

        try:
            body = _ForecastResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FetchError("Weather: unexpected response") from exc

        return snapshot_from_current(body.current or _Current())


def _scenario(code: int, is_day: bool, temp: float, humidity: float) -> WeatherSnapshot:
    return WeatherSnapshot(
        temp=temp, humidity=humidity, code=code, is_day=is_day, label=weather_label(code)
    )


DEV_WEATHER_SCENARIOS: list[WeatherSnapshot] = [
    _scenario(0, True, 22, 45),
    _scenario(0, False, 14, 60),
    _scenario(1, True, 19, 52),
    _scenario(2, True, 18, 58),
    _scenario(2, False, 10, 72),
    _scenario(3, True, 12, 78),
    _scenario(3, False, 8, 85),
    _scenario(45, True, 5, 95),
    _scenario(61, True, 11, 88),
    _scenario(63, False, 7, 92),
    _scenario(71, True, -2, 80),
    _scenario(80, True, 13, 82),
    _scenario(95, False, 16, 75),
]


class ScenarioWeatherSource:
    """Canned snapshots cycled by explicit calls to advance(), never by time."""

    def __init__(self, scenarios: Optional[list[WeatherSnapshot]] = None) -> None:
        self._scenarios = list(scenarios if scenarios is not None else DEV_WEATHER_SCENARIOS)
        if not self._scenarios:
            raise ValueError("ScenarioWeatherSource needs at least one scenario")
        self._index = 0

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> WeatherSnapshot:
        return self._scenarios[self._index]

    def advance(self) -> WeatherSnapshot:
        self._index = (self._index + 1) % len(self._scenarios)
        return self.current

    async def fetch(self) -> WeatherSnapshot:
        return self.current
