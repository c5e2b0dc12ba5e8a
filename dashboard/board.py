"""
Board service: turns session state into the dashboard response.

Reads the three feed states and the current departure selection and decides
each panel's status independently. No I/O, no fetching.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dashboard.calendar_feed import format_day_label
from dashboard.config import AppConfig
from dashboard.models import (
    CalendarPanel,
    DashboardResponse,
    DeparturesPanel,
    Status,
    WeatherPanel,
)
from dashboard.session import DashboardSession, FeedState
from dashboard.weather import NEUTRAL_THEME, weather_theme


def panel_status(state: FeedState, loading_hides_data: bool = True) -> Status:
    """
    Status for one panel.

    Old data is preferred over blanking: an error with data present is
    `stale`, an error without data is `error`.
    """
    if state.loading and (state.data is None or loading_hides_data):
        return Status.loading
    if state.data is None:
        return Status.error if state.error else Status.loading
    if state.error:
        return Status.stale
    return Status.ok


class BoardService:
    """Builds DashboardResponse snapshots from a running session."""

    def __init__(self, config: AppConfig, session: DashboardSession) -> None:
        self._config = config
        self._session = session

    def get_dashboard(self, now: Optional[datetime] = None) -> DashboardResponse:
        if now is None:
            now = datetime.now(timezone.utc)
        return DashboardResponse(
            as_of=now,
            date_label=format_day_label(now.astimezone(self._config.tz).date()),
            departures=self.departures_panel(),
            weather=self.weather_panel(),
            calendar=self.calendar_panel(),
        )

    def departures_panel(self) -> DeparturesPanel:
        state = self._session.departures
        selection = self._session.selection
        status = panel_status(state)
        if status == Status.ok and (selection is None or not selection.visible):
            status = Status.no_service

        return DeparturesPanel(
            status=status,
            station_name=self._config.station_name,
            site_id=self._session.site_id,
            destination=self._config.destination,
            walk_minutes=self._config.walk_minutes,
            selection=selection,
            stop_deviations=state.data.stop_deviations if state.data else [],
            error=state.error,
            updated_at=state.updated_at,
        )

    def weather_panel(self) -> WeatherPanel:
        state = self._session.weather
        snapshot = state.data
        theme = weather_theme(snapshot.code, snapshot.is_day) if snapshot else NEUTRAL_THEME
        return WeatherPanel(
            status=panel_status(state),
            weather=snapshot,
            theme=theme,
            scenario_mode=self._session.scenario_mode,
            error=state.error,
            updated_at=state.updated_at,
        )

    def calendar_panel(self) -> Optional[CalendarPanel]:
        if not self._session.calendar_enabled:
            return None
        state = self._session.calendar
        return CalendarPanel(
            status=panel_status(state, loading_hides_data=False),
            day=state.data,
            error=state.error,
            updated_at=state.updated_at,
        )
