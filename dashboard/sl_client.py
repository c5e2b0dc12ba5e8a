"""
Async SL Transport API client.

Thin wrapper around httpx. Fetches sites and departures, validates the
loosely-typed payloads once, and hands typed models downstream.
Raises FetchError on failures.
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from dashboard.errors import FetchError
from dashboard.models import Departure, DepartureFeedResult, StopDeviation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Upstream schemas
# ---------------------------------------------------------------------------


class Site(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: Optional[str] = None


class _RawLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    designation: Optional[Union[str, int]] = None
    transport_mode: Optional[str] = None


class _RawJourney(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None


class _RawDeparture(BaseModel):
    model_config = ConfigDict(extra="ignore")

    line: Optional[_RawLine] = None
    destination: Optional[str] = None
    direction: Optional[str] = None
    scheduled: Optional[str] = None
    expected: Optional[str] = None
    journey: Optional[_RawJourney] = None


class _RawDeparturesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    departures: Optional[list[_RawDeparture]] = None
    stop_deviations: Optional[list[StopDeviation]] = None


_SITES = TypeAdapter(list[Site])


def parse_instant(raw: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """
    Parse an upstream timestamp.

    SL reports local wall-clock times without an offset; those are placed in
    `tz`. Returns None for missing or unparsable values.
    """
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=tz)
    return ts


def _to_departure(raw: _RawDeparture, tz: tzinfo) -> Optional[Departure]:
    scheduled = parse_instant(raw.scheduled, tz)
    if scheduled is None:
        return None
    line = raw.line or _RawLine()
    journey_id = raw.journey.id if raw.journey else None
    return Departure(
        line="" if line.designation is None else str(line.designation),
        destination=raw.destination or raw.direction or "",
        scheduled=scheduled,
        expected=parse_instant(raw.expected, tz),
        transport_mode=line.transport_mode or "",
        journey_id=None if journey_id is None else str(journey_id),
    )


class SLClient:
    """Async client for the SL Transport API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tz: tzinfo,
        base_url: str = "https://transport.integration.sl.se",
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._tz = tz
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def fetch_sites(self) -> list[Site]:
        """
        Fetch every known site in one call.

        Raises FetchError on HTTP, connection or payload failures.
        """
        body = await self._fetch("/v1/sites", "SL sites", params={"expand": "true"})
        try:
            return _SITES.validate_python(body)
        except ValidationError as exc:
            raise FetchError(f"SL sites: unexpected response ({exc.error_count()} errors)") from exc

    async def fetch_departures(self, site_id: int) -> DepartureFeedResult:
        """
        Fetch all departures for a site.

        Entries without a usable scheduled time are dropped here, so every
        returned Departure is complete. Order is kept as provided upstream.
        """
        body = await self._fetch(f"/v1/sites/{site_id}/departures", "SL departures")
        try:
            parsed = _RawDeparturesResponse.model_validate(body)
        except ValidationError as exc:
            raise FetchError(
                f"SL departures: unexpected response ({exc.error_count()} errors)"
            ) from exc

        departures: list[Departure] = []
        for raw in parsed.departures or []:
            departure = _to_departure(raw, self._tz)
            if departure is None:
                logger.debug("Skipping departure without scheduled time: %s", raw)
                continue
            departures.append(departure)

        return DepartureFeedResult(
            departures=departures,
            stop_deviations=parsed.stop_deviations or [],
        )

    async def _fetch(
        self, path: str, label: str, params: Optional[dict] = None
    ) -> Any:
        """Make an HTTP GET request to the SL API and return the decoded JSON."""
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.get(url, params=params, timeout=self._timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("SL request failed: %s %s -> %s", "GET", url, exc)
            raise FetchError(f"{label}: connection error: {exc}") from exc

        if response.status_code != 200:
            raise FetchError(
                f"{label}: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"{label}: response was not valid JSON") from exc
