"""
Pydantic models for the commute dashboard.

Internal feed models (Departure, WeatherSnapshot, CalendarEvent) plus the
response models served by the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Status(str, Enum):
    loading = "loading"
    ok = "ok"
    no_service = "no_service"
    stale = "stale"
    error = "error"


# ---------------------------------------------------------------------------
# Departures
# ---------------------------------------------------------------------------


class Departure(BaseModel):
    """One scheduled transit run, as validated at the feed boundary."""

    line: str
    destination: str
    scheduled: datetime
    expected: Optional[datetime] = None
    transport_mode: str
    journey_id: Optional[str] = None

    @property
    def effective(self) -> datetime:
        """Expected time when real-time data exists, otherwise scheduled."""
        return self.expected if self.expected is not None else self.scheduled


class StopDeviation(BaseModel):
    """Service deviation reported for the stop, passed through as-is."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    importance_level: Optional[int] = None


class DepartureFeedResult(BaseModel):
    departures: list[Departure] = Field(default_factory=list)
    stop_deviations: list[StopDeviation] = Field(default_factory=list)


class DepartureView(BaseModel):
    """A visible departure with its derived countdown values."""

    line: str
    destination: str
    time: datetime = Field(description="Effective departure instant")
    scheduled: datetime
    minutes_until: int = Field(ge=0, description="Whole minutes until departure")
    delay_minutes: int = Field(ge=0, description="Minutes behind schedule, never negative")
    line_color: Optional[str] = None
    countdown_label: str
    journey_id: Optional[str] = None


class DepartureSelection(BaseModel):
    """Derived view over the current departure list for one countdown tick."""

    visible: list[DepartureView] = Field(default_factory=list)
    next: Optional[DepartureView] = None
    leave_label: Optional[str] = None
    depart_label: Optional[str] = Field(
        default=None, description="Countdown label for the next departure"
    )
    can_make_it: bool = False
    computed_at: datetime


# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------


class WeatherSnapshot(BaseModel):
    """Current conditions; replaced wholesale on each poll."""

    temp: Optional[float] = None
    humidity: Optional[float] = None
    code: int = 0
    is_day: bool = True
    label: str


class WeatherTheme(BaseModel):
    model_config = ConfigDict(frozen=True)

    icon: str
    top_color: str
    gradient: str
    light: bool = False


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


class CalendarEvent(BaseModel):
    summary: str
    start: datetime
    end: datetime
    all_day: bool = False


class CalendarDaySelection(BaseModel):
    date_label: Optional[str] = None
    events: list[CalendarEvent] = Field(default_factory=list)
    is_today: bool = False


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class DeparturesPanel(BaseModel):
    """Departures towards the configured destination."""

    status: Status
    station_name: str
    site_id: Optional[int] = None
    destination: str
    walk_minutes: int
    selection: Optional[DepartureSelection] = None
    stop_deviations: list[StopDeviation] = Field(default_factory=list)
    error: Optional[str] = None
    updated_at: Optional[datetime] = None


class WeatherPanel(BaseModel):
    status: Status
    weather: Optional[WeatherSnapshot] = None
    theme: WeatherTheme
    scenario_mode: bool = False
    error: Optional[str] = None
    updated_at: Optional[datetime] = None


class CalendarPanel(BaseModel):
    status: Status
    day: Optional[CalendarDaySelection] = None
    error: Optional[str] = None
    updated_at: Optional[datetime] = None


class DashboardResponse(BaseModel):
    """Top-level response for GET /v1/dashboard."""

    as_of: datetime
    date_label: str
    departures: DeparturesPanel
    weather: WeatherPanel
    calendar: Optional[CalendarPanel] = None
