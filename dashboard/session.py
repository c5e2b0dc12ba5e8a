"""
Dashboard session: owns feed state and the refresh timers.

One session lives for the lifetime of the app. It resolves the station once,
then polls departures, weather and calendar on independent asyncio timers,
and recomputes the departure selection on a separate countdown tick.

Every timer fire spawns its fetch as a separate task, so fetches for one feed
may overlap. Each FeedState carries a request sequence number and a result is
applied only if it belongs to the latest request issued for that feed. After
stop(), in-flight fetches run to completion but their results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine, Generic, Optional, TypeVar

from dashboard.calendar_feed import CalendarClient
from dashboard.config import AppConfig
from dashboard.departures import DepartureFeed
from dashboard.errors import DashboardError
from dashboard.models import (
    CalendarDaySelection,
    DepartureFeedResult,
    DepartureSelection,
    WeatherSnapshot,
)
from dashboard.selection import select_departures
from dashboard.sl_client import SLClient
from dashboard.stations import resolve_site_id
from dashboard.weather import ScenarioWeatherSource, WeatherSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FeedState(Generic[T]):
    """Latest data, loading flag and error for one feed."""

    data: Optional[T] = None
    loading: bool = False
    error: Optional[str] = None
    updated_at: Optional[datetime] = None
    seq: int = 0


class DashboardSession:
    """
    Orchestrates the station resolver and the three feeds.

    Lifecycle: construct -> start() -> stop(). start() must be called from a
    running event loop.
    """

    def __init__(
        self,
        config: AppConfig,
        sl_client: SLClient,
        weather_source: WeatherSource,
        calendar_client: Optional[CalendarClient] = None,
        live_weather: Optional[WeatherSource] = None,
    ) -> None:
        self._config = config
        self._sl = sl_client
        self._weather_source = weather_source
        self._live_weather = live_weather
        self._calendar_client = calendar_client
        self._clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)

        self.site_id: Optional[int] = None
        self._departure_feed: Optional[DepartureFeed] = None
        self._selection: Optional[DepartureSelection] = None

        self.departures: FeedState[DepartureFeedResult] = FeedState(loading=True)
        self.weather: FeedState[WeatherSnapshot] = FeedState(loading=True)
        self.calendar: FeedState[CalendarDaySelection] = FeedState(
            loading=calendar_client is not None
        )

        self._active = False
        self._timers: dict[str, asyncio.Task] = {}
        self._inflight: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Resolve the station and start the weather, calendar and countdown timers."""
        if self._active:
            return
        self._active = True
        intervals = self._config.intervals

        self._spawn(self._resolve_site())
        self._start_timer(
            "weather",
            intervals.weather,
            lambda: self._poll(self.weather, self._fetch_weather),
        )
        if self._calendar_client is not None:
            self._start_timer(
                "calendar",
                intervals.calendar,
                lambda: self._poll(self.calendar, self._fetch_calendar),
            )
        self._start_timer("countdown", intervals.countdown, self.recompute)
        logger.info(
            "Dashboard session started for %r (calendar %s)",
            self._config.station_name,
            "on" if self._calendar_client else "off",
        )

    def stop(self) -> None:
        """Cancel all timers. In-flight fetches finish but their results are discarded."""
        if not self._active:
            return
        self._active = False
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        logger.info("Dashboard session stopped (%d fetches in flight)", len(self._inflight))

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch to settle."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def selection(self) -> Optional[DepartureSelection]:
        return self._selection

    @property
    def scenario_mode(self) -> bool:
        return isinstance(self._weather_source, ScenarioWeatherSource)

    @property
    def calendar_enabled(self) -> bool:
        return self._calendar_client is not None

    def recompute(self) -> None:
        """Refresh countdown-dependent values without fetching anything."""
        data = self.departures.data
        if data is None:
            self._selection = None
            return
        self._selection = select_departures(
            data.departures,
            self._clock(),
            walk_minutes=self._config.walk_minutes,
            limit=self._config.max_departures,
        )

    # ------------------------------------------------------------------
    # Manual actions
    # ------------------------------------------------------------------

    def refresh_departures(self) -> bool:
        """Re-fetch departures now. False when the station never resolved."""
        if self._departure_feed is None or not self._active:
            return False
        self._poll(self.departures, self._fetch_departures, manual=True)
        return True

    def refresh_calendar(self) -> bool:
        if self._calendar_client is None or not self._active:
            return False
        self._poll(self.calendar, self._fetch_calendar, manual=True)
        return True

    def cycle_weather(self) -> bool:
        """Advance to the next canned weather scenario (scenario mode only)."""
        source = self._weather_source
        if not isinstance(source, ScenarioWeatherSource):
            return False
        snapshot = source.advance()
        seq = self._begin(self.weather, manual=False)
        self._succeed(self.weather, seq, snapshot)
        return True

    def use_live_weather(self) -> bool:
        """Swap the scenario source for live weather and fetch immediately."""
        if self._live_weather is None or not self.scenario_mode:
            return False
        self._weather_source = self._live_weather
        logger.info("Switched weather to live data")
        if self._active:
            self._poll(self.weather, self._fetch_weather, manual=True)
        return True

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _resolve_site(self) -> None:
        name = self._config.station_name
        try:
            site_id = await resolve_site_id(self._sl, name)
        except DashboardError as exc:
            if self._active:
                logger.warning("Station resolution for %r failed: %s", name, exc)
                self.departures.error = str(exc)
                self.departures.loading = False
            return
        except Exception as exc:
            logger.exception("Unexpected error while resolving %r", name)
            if self._active:
                self.departures.error = f"Oväntat fel: {exc}"
                self.departures.loading = False
            return

        if not self._active:
            return
        self.site_id = site_id
        self._departure_feed = DepartureFeed(
            self._sl, site_id, self._config.transport_modes, self._config.destination
        )
        self._start_timer(
            "departures",
            self._config.intervals.departures,
            lambda: self._poll(self.departures, self._fetch_departures),
        )

    async def _fetch_departures(self) -> DepartureFeedResult:
        assert self._departure_feed is not None
        return await self._departure_feed.fetch()

    async def _fetch_weather(self) -> WeatherSnapshot:
        return await self._weather_source.fetch()

    async def _fetch_calendar(self) -> CalendarDaySelection:
        assert self._calendar_client is not None
        return await self._calendar_client.fetch()

    def _poll(
        self, state: FeedState[T], fetch: Callable[[], Awaitable[T]], manual: bool = False
    ) -> None:
        seq = self._begin(state, manual)
        self._spawn(self._load(state, seq, fetch))

    def _begin(self, state: FeedState, manual: bool) -> int:
        """Issue a new request number; show loading on manual refresh or first load."""
        if manual or state.data is None:
            state.loading = True
        state.seq += 1
        return state.seq

    async def _load(
        self, state: FeedState[T], seq: int, fetch: Callable[[], Awaitable[T]]
    ) -> None:
        try:
            result = await fetch()
        except DashboardError as exc:
            self._fail(state, seq, str(exc) or exc.__class__.__name__)
            return
        except Exception as exc:
            logger.exception("Unexpected error while fetching")
            self._fail(state, seq, f"Oväntat fel: {exc}")
            return
        self._succeed(state, seq, result)

    def _accepts(self, state: FeedState, seq: int) -> bool:
        if not self._active:
            logger.debug("Dropping result %d: session stopped", seq)
            return False
        if seq != state.seq:
            logger.debug("Dropping result %d: superseded by %d", seq, state.seq)
            return False
        return True

    def _succeed(self, state: FeedState[T], seq: int, result: T) -> None:
        if not self._accepts(state, seq):
            return
        state.data = result
        state.error = None
        state.loading = False
        state.updated_at = self._clock()
        if state is self.departures:
            self.recompute()

    def _fail(self, state: FeedState, seq: int, message: str) -> None:
        if not self._accepts(state, seq):
            return
        logger.warning("Feed fetch failed: %s", message)
        state.error = message
        state.loading = False

    # ------------------------------------------------------------------
    # Task plumbing
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _start_timer(self, name: str, interval: float, action: Callable[[], None]) -> None:
        self._timers[name] = asyncio.create_task(self._every(interval, action))

    async def _every(self, interval: float, action: Callable[[], None]) -> None:
        """Run `action` now and then every `interval` seconds until cancelled."""
        while True:
            action()
            await asyncio.sleep(interval)
