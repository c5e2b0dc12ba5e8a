"""
FastAPI application for the commute dashboard.

Lifespan manages the httpx client, the upstream clients, the dashboard
session and the board service.
Routes: /health, /v1/dashboard, manual refresh actions, and in development
mode a relay (/api/sl/..., /api/calendar.ics) that forwards to the upstream
hosts for display clients that cannot call them directly.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Request, Response

from dashboard.board import BoardService
from dashboard.calendar_feed import CalendarClient
from dashboard.config import AppConfig, load_config
from dashboard.models import (
    CalendarPanel,
    DashboardResponse,
    DeparturesPanel,
    WeatherPanel,
)
from dashboard.session import DashboardSession
from dashboard.sl_client import SLClient
from dashboard.weather import OpenMeteoClient, ScenarioWeatherSource

logger = logging.getLogger(__name__)

# Global references set during lifespan
_board_service: Optional[BoardService] = None
_session: Optional[DashboardSession] = None
_config: Optional[AppConfig] = None
_http_client: Optional[httpx.AsyncClient] = None


def build_session(config: AppConfig, http_client: httpx.AsyncClient) -> DashboardSession:
    """Wire the upstream clients for the configured mode into a session."""
    tz = config.tz
    sl = SLClient(
        http_client=http_client,
        tz=tz,
        base_url=config.transit_url(),
        timeout=config.request_timeout,
    )
    live_weather = OpenMeteoClient(
        http_client=http_client,
        latitude=config.latitude,
        longitude=config.longitude,
        timezone=config.timezone,
        base_url=config.weather_base_url,
        timeout=config.request_timeout,
    )

    calendar = None
    calendar_url = config.calendar_fetch_url()
    if calendar_url is not None:
        calendar = CalendarClient(
            http_client=http_client,
            url=calendar_url,
            tz=tz,
            timeout=config.request_timeout,
        )

    if config.dev_mode:
        return DashboardSession(
            config=config,
            sl_client=sl,
            weather_source=ScenarioWeatherSource(),
            calendar_client=calendar,
            live_weather=live_weather,
        )
    return DashboardSession(
        config=config,
        sl_client=sl,
        weather_source=live_weather,
        calendar_client=calendar,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, create HTTP client, session, board service."""
    global _board_service, _session, _config, _http_client

    # Configure logging
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _config = load_config()
    logger.info(
        "Loaded config: station=%r, destination=%r, mode=%s, calendar=%s",
        _config.station_name,
        _config.destination,
        _config.app_env,
        "enabled" if _config.calendar_enabled else "disabled",
    )

    async with httpx.AsyncClient() as http_client:
        _http_client = http_client
        _session = build_session(_config, http_client)
        _board_service = BoardService(config=_config, session=_session)
        _session.start()
        logger.info("Dashboard ready")
        yield
        _session.stop()
        await _session.wait_idle()

    _board_service = None
    _session = None
    _config = None
    _http_client = None


app = FastAPI(
    title="Commute Dashboard API",
    version="1.0.0",
    description="""
Departures, weather and calendar for a single wall display.

- **Walk-time aware**: picks the next departure you can still reach on foot
- **Independent feeds**: each panel refreshes on its own timer and reports its own errors
- **Stale over blank**: a failed refresh keeps showing the last good data
    """.strip(),
    lifespan=lifespan,
    openapi_tags=[
        {"name": "dashboard", "description": "Unified dashboard view and refresh actions"},
        {"name": "health", "description": "Service health check"},
    ],
)


def _require_session() -> tuple[DashboardSession, BoardService]:
    if _session is None or _board_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return _session, _board_service


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"], summary="Health check")
async def health():
    """Always returns HTTP 200 with a simple JSON response."""
    return {"status": "healthy"}


@app.get(
    "/v1/dashboard",
    response_model=DashboardResponse,
    tags=["dashboard"],
    summary="Get the dashboard",
)
async def get_dashboard():
    """
    Return all panels as of now.

    Departure countdowns reflect the most recent countdown tick, not the
    request time.
    """
    _, board = _require_session()
    return board.get_dashboard()


@app.post(
    "/v1/departures/refresh",
    response_model=DeparturesPanel,
    status_code=202,
    tags=["dashboard"],
    summary="Refresh departures now",
)
async def refresh_departures():
    session, board = _require_session()
    if not session.refresh_departures():
        raise HTTPException(status_code=409, detail="Departures are not available")
    return board.departures_panel()


@app.post(
    "/v1/calendar/refresh",
    response_model=CalendarPanel,
    status_code=202,
    tags=["dashboard"],
    summary="Refresh calendar now",
)
async def refresh_calendar():
    session, board = _require_session()
    if not session.refresh_calendar():
        raise HTTPException(status_code=409, detail="Calendar is not enabled")
    return board.calendar_panel()


@app.post(
    "/v1/weather/cycle",
    response_model=WeatherPanel,
    status_code=202,
    tags=["dashboard"],
    summary="Show the next canned weather scenario",
)
async def cycle_weather():
    session, board = _require_session()
    if not session.cycle_weather():
        raise HTTPException(status_code=409, detail="Weather is not in scenario mode")
    return board.weather_panel()


@app.post(
    "/v1/weather/live",
    response_model=WeatherPanel,
    status_code=202,
    tags=["dashboard"],
    summary="Switch weather to live data",
)
async def use_live_weather():
    session, board = _require_session()
    if not session.use_live_weather():
        raise HTTPException(status_code=409, detail="Weather is already live")
    return board.weather_panel()


# ---------------------------------------------------------------------------
# Development relay
# ---------------------------------------------------------------------------


def _require_relay() -> tuple[AppConfig, httpx.AsyncClient]:
    if _config is None or _http_client is None or not _config.dev_mode:
        raise HTTPException(status_code=404, detail="Not Found")
    return _config, _http_client


async def _forward(
    http_client: httpx.AsyncClient, url: str, timeout: float, params=None
) -> Response:
    try:
        upstream = await http_client.get(url, params=params, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.error("Relay request failed: %s %s -> %s", "GET", url, exc)
        raise HTTPException(status_code=502, detail="Upstream unreachable") from exc
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


@app.get("/api/sl/{path:path}", include_in_schema=False)
async def relay_transit(path: str, request: Request):
    config, http_client = _require_relay()
    url = f"{config.transit_base_url.rstrip('/')}/{path}"
    return await _forward(
        http_client,
        url,
        config.request_timeout,
        params=list(request.query_params.multi_items()),
    )


@app.get("/api/calendar.ics", include_in_schema=False)
async def relay_calendar():
    config, http_client = _require_relay()
    if not config.calendar_url:
        raise HTTPException(status_code=404, detail="Calendar is not configured")
    return await _forward(http_client, config.calendar_url, config.request_timeout)
