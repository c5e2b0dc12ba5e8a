"""
Shared test fixtures for the commute dashboard.

Provides:
- Builders for SL departure payloads and typed Departure objects
- Builders for iCalendar documents
- A long-interval AppConfig
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from dashboard.config import AppConfig, IntervalConfig
from dashboard.models import Departure

STOCKHOLM = ZoneInfo("Europe/Stockholm")


# ---------------------------------------------------------------------------
# Departure builders
# ---------------------------------------------------------------------------

def make_departure(
    as_of: datetime,
    minutes: Optional[float] = None,
    delay: Optional[float] = None,
    line: str = "11",
    destination: str = "Kungsträdgården",
    transport_mode: str = "METRO",
    journey_id: Optional[str] = None,
) -> Departure:
    """
    Typed departure leaving `minutes` after `as_of` (plus 30 s, so the floor
    of minutes-until is exactly `minutes`). `delay` shifts the expected time
    relative to the scheduled one.
    """
    effective = as_of + timedelta(minutes=minutes or 0, seconds=30)
    if delay is None:
        return Departure(
            line=line,
            destination=destination,
            scheduled=effective,
            transport_mode=transport_mode,
            journey_id=journey_id,
        )
    return Departure(
        line=line,
        destination=destination,
        scheduled=effective - timedelta(minutes=delay),
        expected=effective,
        transport_mode=transport_mode,
        journey_id=journey_id,
    )


def local_iso(minutes_from_now: float, tz=STOCKHOLM) -> str:
    """Naive local wall-clock timestamp, the way SL reports departures."""
    t = datetime.now(tz) + timedelta(minutes=minutes_from_now)
    return t.replace(tzinfo=None).isoformat(timespec="seconds")


def sl_departure(
    scheduled: Optional[str],
    expected: Optional[str] = None,
    designation="11",
    transport_mode: str = "METRO",
    destination: Optional[str] = "Kungsträdgården",
    direction: Optional[str] = None,
    journey_id: int = 1,
) -> dict:
    """Build one raw SL departure entry."""
    return {
        "destination": destination,
        "direction": direction,
        "direction_code": 2,
        "state": "EXPECTED",
        "scheduled": scheduled,
        "expected": expected,
        "journey": {"id": journey_id, "state": "EXPECTED"},
        "line": {
            "id": 11,
            "designation": designation,
            "transport_mode": transport_mode,
            "group_of_lines": "Tunnelbanans blå linje",
        },
    }


# ---------------------------------------------------------------------------
# Calendar builders
# ---------------------------------------------------------------------------

def vevent(summary: str = "Möte", dtstart: str = "DTSTART:20260213T090000Z", dtend: Optional[str] = None) -> str:
    lines = ["BEGIN:VEVENT", f"SUMMARY:{summary}", dtstart]
    if dtend:
        lines.append(dtend)
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def ics_document(*events: str) -> str:
    parts = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Test//EN", *events, "END:VCALENDAR"]
    return "\r\n".join(parts) + "\r\n"


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def config():
    """Config with long intervals, so each timer fires exactly once per test."""
    return AppConfig(
        intervals=IntervalConfig(departures=3600, weather=3600, calendar=3600, countdown=3600),
    )


@pytest.fixture()
def now():
    return datetime(2026, 2, 13, 12, 34, 56, tzinfo=timezone.utc)
