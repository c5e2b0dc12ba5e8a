"""
Minimal iCalendar (RFC 5545) event parser.

Three stages: unfold continuation lines, split VEVENT blocks, extract
SUMMARY / DTSTART / DTEND from each block. Only what the dashboard shows is
extracted; blocks without a usable DTSTART are skipped.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Iterator, Optional

from dashboard.models import CalendarEvent

UNTITLED = "Namnlös"

_FOLD = re.compile(r"\r?\n[ \t]")
_CALENDAR_MARKER = re.compile(r"BEGIN:(VCALENDAR|VEVENT)", re.IGNORECASE)
_DATE_VALUE = re.compile(r"^(\d{8})(?:T(\d{6})Z?)?")


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text


def looks_like_ics(text: str) -> bool:
    return _CALENDAR_MARKER.search(text) is not None


def unfold(text: str) -> str:
    """Join folded lines: a line break followed by a space or tab continues the line."""
    return _FOLD.sub("", text)


def split_events(text: str) -> Iterator[list[str]]:
    """Yield the content lines of each BEGIN:VEVENT ... END:VEVENT block."""
    block: Optional[list[str]] = None
    for line in unfold(text).splitlines():
        marker = line.strip().upper()
        if marker == "BEGIN:VEVENT":
            block = []
        elif marker == "END:VEVENT":
            if block is not None:
                yield block
            block = None
        elif block is not None:
            block.append(line)
    # An unterminated trailing block still counts
    if block:
        yield block


def _properties(lines: list[str]) -> dict[str, str]:
    """Map property name to value for the first occurrence of each name."""
    props: dict[str, str] = {}
    for line in lines:
        head, sep, value = line.partition(":")
        if not sep:
            continue
        name = head.split(";", 1)[0].strip().upper()
        props.setdefault(name, value)
    return props


def _parse_date(value: str, tz: tzinfo) -> datetime:
    """Calendar date (YYYYMMDD) as local midnight."""
    d = date(int(value[0:4]), int(value[4:6]), int(value[6:8]))
    return datetime(d.year, d.month, d.day, tzinfo=tz)


def _parse_datetime(value: str) -> datetime:
    """Date-time value; read as UTC whether or not it carries the Z suffix."""
    if len(value) == 8:
        return datetime(int(value[0:4]), int(value[4:6]), int(value[6:8]), tzinfo=timezone.utc)
    return datetime(
        int(value[0:4]),
        int(value[4:6]),
        int(value[6:8]),
        int(value[9:11]),
        int(value[11:13]),
        int(value[13:15] or 0),
        tzinfo=timezone.utc,
    )


def _date_token(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    match = _DATE_VALUE.match(raw.strip())
    return match.group(0) if match else None


def parse_event(lines: list[str], tz: tzinfo) -> Optional[CalendarEvent]:
    """Build one event from a VEVENT block, or None if the block is unusable."""
    props = _properties(lines)
    start_token = _date_token(props.get("DTSTART"))
    if start_token is None:
        return None
    end_token = _date_token(props.get("DTEND"))

    all_day = len(start_token) == 8
    try:
        if all_day:
            start = _parse_date(start_token, tz)
            end = _parse_date(end_token[:8], tz) if end_token else start
        else:
            start = _parse_datetime(start_token)
            end = _parse_datetime(end_token) if end_token else start
    except ValueError:
        return None

    summary = props.get("SUMMARY", "").strip().replace("\\,", ",")
    return CalendarEvent(
        summary=summary or UNTITLED,
        start=start,
        end=end,
        all_day=all_day,
    )


def parse_ics(text: str, tz: tzinfo) -> list[CalendarEvent]:
    """Parse every usable event in a calendar document, in document order."""
    events = []
    for block in split_events(strip_bom(text)):
        event = parse_event(block, tz)
        if event is not None:
            events.append(event)
    return events
