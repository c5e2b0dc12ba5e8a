"""
Pure selection logic for departures.

No I/O. Takes typed Departure objects and a reference time and returns the
visible list, the departure worth walking to, and its display labels.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Optional

from dashboard.models import Departure, DepartureSelection, DepartureView

WALK_MINUTES = 10
MAX_VISIBLE = 3

CANNOT_MAKE_IT = "Hinner ej gå"
NOW_LABEL = "Nu"

_LEADING_NUMBER = re.compile(r"\s*([+-]?\d+)")

_LINE_COLORS = {
    10: "blue",
    11: "blue",
    13: "red",
    14: "red",
    17: "green",
    18: "green",
    19: "green",
}


def compute_minutes(departure_time: datetime, as_of: datetime) -> int:
    """
    Compute minutes until departure.

    Returns floor of (departure_time - as_of) in seconds / 60.
    """
    delta_seconds = (departure_time - as_of).total_seconds()
    return math.floor(delta_seconds / 60)


def is_upcoming(departure: Departure, as_of: datetime) -> bool:
    return departure.effective > as_of


def delay_minutes(departure: Departure) -> int:
    """Minutes behind schedule, rounded half up; 0 when on time or early."""
    if departure.expected is None:
        return 0
    diff = (departure.expected - departure.scheduled).total_seconds() / 60
    if diff <= 0:
        return 0
    return math.floor(diff + 0.5)


def line_color(designation: str) -> Optional[str]:
    """
    Color token for a metro line designation, None for anything else.

    Only the leading number counts, so "11X" is a blue-line service.
    """
    match = _LEADING_NUMBER.match(designation or "")
    if match is None:
        return None
    return _LINE_COLORS.get(int(match.group(1)))


def minutes_label(minutes: int) -> str:
    if minutes < 1:
        return NOW_LABEL
    return f"{minutes} min"


def leave_label(minutes_until: int, walk_minutes: int = WALK_MINUTES) -> str:
    """Label telling when to leave, or that the departure cannot be reached."""
    if minutes_until <= walk_minutes:
        return CANNOT_MAKE_IT
    return f"Gå om {minutes_until - walk_minutes} min"


def _view(departure: Departure, as_of: datetime) -> DepartureView:
    minutes = compute_minutes(departure.effective, as_of)
    return DepartureView(
        line=departure.line,
        destination=departure.destination,
        time=departure.effective,
        scheduled=departure.scheduled,
        minutes_until=minutes,
        delay_minutes=delay_minutes(departure),
        line_color=line_color(departure.line),
        countdown_label=minutes_label(minutes),
        journey_id=departure.journey_id,
    )


def visible_departures(
    departures: list[Departure], as_of: datetime, limit: int = MAX_VISIBLE
) -> list[Departure]:
    """
    Upcoming departures ordered by effective time, capped at `limit`.

    The sort is stable, so an upstream list that is already in time order
    keeps its order.
    """
    upcoming = [d for d in departures if is_upcoming(d, as_of)]
    upcoming.sort(key=lambda d: d.effective)
    return upcoming[:limit]


def select_departures(
    departures: list[Departure],
    as_of: datetime,
    walk_minutes: int = WALK_MINUTES,
    limit: int = MAX_VISIBLE,
) -> DepartureSelection:
    """
    Build the departure selection for one countdown tick.

    Args:
        departures: Current filtered departure list (any order).
        as_of: Reference timestamp (now), timezone-aware.
        walk_minutes: Walk time to the platform in minutes.
        limit: Maximum number of visible departures.

    Returns:
        DepartureSelection. `next` is the first visible departure that leaves
        more than `walk_minutes` from now, else the first visible one, else
        None.
    """
    views = [_view(d, as_of) for d in visible_departures(departures, as_of, limit)]

    if not views:
        return DepartureSelection(computed_at=as_of)

    catchable = next((v for v in views if v.minutes_until > walk_minutes), None)
    chosen = catchable or views[0]
    return DepartureSelection(
        visible=views,
        next=chosen,
        leave_label=leave_label(chosen.minutes_until, walk_minutes),
        depart_label=minutes_label(chosen.minutes_until),
        can_make_it=catchable is not None,
        computed_at=as_of,
    )
