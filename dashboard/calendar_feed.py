"""
Calendar feed: fetches a public iCal document and picks the day to show.

Today wins when it has events; otherwise the first later day with events
within the horizon.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

import httpx

from dashboard.errors import FetchError, ParseError
from dashboard.ics import looks_like_ics, parse_ics, strip_bom
from dashboard.models import CalendarDaySelection, CalendarEvent

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 31
TODAY_LABEL = "Idag"
UNREACHABLE_HINT = "Kalendern kunde inte nås. Kontrollera nätverket eller använd en proxy."

_WEEKDAYS = ["Mån", "Tis", "Ons", "Tors", "Fre", "Lör", "Sön"]
_MONTHS = ["Jan", "Feb", "Mars", "Apr", "Maj", "Juni", "Juli", "Aug", "Sep", "Okt", "Nov", "Dec"]


def format_day_label(day: date) -> str:
    """Short Swedish date, e.g. 'Mån 27 Jan'."""
    return f"{_WEEKDAYS[day.weekday()]} {day.day} {_MONTHS[day.month - 1]}"


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def upcoming_events(
    events: list[CalendarEvent], now: datetime, tz: tzinfo, days: int = UPCOMING_DAYS
) -> list[CalendarEvent]:
    """Events still running after the start of today and starting before the horizon."""
    today = now.astimezone(tz).date()
    today_start = _midnight(today, tz)
    horizon = _midnight(today + timedelta(days=days), tz)
    return [ev for ev in events if ev.end > today_start and ev.start < horizon]


def select_day(
    events: list[CalendarEvent], now: datetime, tz: tzinfo, days: int = UPCOMING_DAYS
) -> CalendarDaySelection:
    """Pick today's events, else the nearest later day's, else nothing."""
    today = now.astimezone(tz).date()

    by_day: dict[date, list[CalendarEvent]] = {}
    for ev in upcoming_events(events, now, tz, days):
        by_day.setdefault(ev.start.astimezone(tz).date(), []).append(ev)

    for offset in range(days):
        day = today + timedelta(days=offset)
        on_day = by_day.get(day)
        if not on_day:
            continue
        on_day.sort(key=lambda ev: ev.start)
        if offset == 0:
            return CalendarDaySelection(date_label=TODAY_LABEL, events=on_day, is_today=True)
        return CalendarDaySelection(
            date_label=format_day_label(day), events=on_day, is_today=False
        )

    return CalendarDaySelection()


class CalendarClient:
    """Fetches the calendar document and returns the selected day."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        tz: tzinfo,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._url = url
        self._tz = tz
        self._timeout = timeout

    async def fetch_events(self) -> list[CalendarEvent]:
        """
        Fetch and parse every event in the feed.

        Raises FetchError when the feed cannot be fetched and ParseError when
        the body is not a calendar document.
        """
        try:
            response = await self._http.get(
                self._url, timeout=self._timeout, headers={"Cache-Control": "no-store"}
            )
        except httpx.TransportError as exc:
            logger.error("Calendar request failed: %s -> %s", "GET", exc)
            raise FetchError(UNREACHABLE_HINT) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Calendar request failed: %s -> %s", "GET", exc)
            raise FetchError(f"Kalender: {exc}") from exc

        if not response.is_success:
            raise FetchError(
                f"Kalender: {response.status_code}", status_code=response.status_code
            )

        text = strip_bom(response.text)
        if not looks_like_ics(text):
            raise ParseError("Kalendern returnerade inte en giltig ICS-fil")
        return parse_ics(text, self._tz)

    async def fetch(self, now: Optional[datetime] = None) -> CalendarDaySelection:
        events = await self.fetch_events()
        if now is None:
            now = datetime.now(self._tz)
        return select_day(events, now, self._tz)
