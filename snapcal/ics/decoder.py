"""Read iCalendar documents (ours or model-written) back into events."""

import logging
import re
from datetime import date, datetime, time, tzinfo
from typing import Optional

import icalendar
import pytz

from .models import CalendarEvent, InvalidTimestamp, localize

logger = logging.getLogger(__name__)

CALENDAR_BLOCK = re.compile(r"BEGIN:VCALENDAR.*?END:VCALENDAR", re.DOTALL | re.IGNORECASE)
CODE_FENCE = re.compile(r"```[a-zA-Z]*")


class ICSParseError(ValueError):
    """The text is not a structurally valid iCalendar document."""


def extract_calendar(text: str) -> Optional[str]:
    """
    Pull the VCALENDAR block out of free text such as a model reply.

    Markdown code fences are dropped and line endings normalised to CRLF.

    Returns:
        The calendar block, or None if the text contains none.
    """
    if not text:
        return None
    match = CALENDAR_BLOCK.search(CODE_FENCE.sub("", text))
    if not match:
        return None
    lines = match.group(0).replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return "\r\n".join(line.rstrip() for line in lines if line.strip()) + "\r\n"


def _event_time(component: icalendar.Component, name: str, tz: tzinfo, field: str) -> Optional[datetime]:
    """
    Read DTSTART/DTEND as an aware datetime.

    Floating times and DATE values are placed in ``tz``; values with a TZID
    or a trailing Z keep the zone icalendar resolved for them.
    """
    failed = [message for prop, message in component.errors if prop == name]
    if failed:
        raise InvalidTimestamp(field, failed[0])
    if name not in component:
        return None

    value = component.decoded(name)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return localize(value, tz)
        return value
    if isinstance(value, date):
        return localize(datetime.combine(value, time()), tz)
    raise InvalidTimestamp(field, value)


def _text(component: icalendar.Component, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    return str(value) or None


def decode(text: str, tz: Optional[tzinfo] = None) -> list[CalendarEvent]:
    """
    Read the VEVENTs of an iCalendar document.

    Args:
        text: Document text, CRLF or LF line endings.
        tz: Timezone for floating times and all-day dates (default: UTC).

    Returns:
        Events in document order with aware datetimes for start and end.
        A missing DTEND is taken from DURATION, else it equals the start.

    Raises:
        ICSParseError: On unbalanced BEGIN/END blocks or a missing VCALENDAR.
        InvalidTimestamp: On an unreadable or missing DTSTART/DTEND.
    """
    tz = tz or pytz.utc
    try:
        calendar = icalendar.Calendar.from_ical(text)
    except ValueError as e:
        raise ICSParseError(str(e)) from e

    if calendar.name != "VCALENDAR":
        raise ICSParseError(f"Expected a VCALENDAR, found {calendar.name or 'nothing'}")

    events = []
    for component in calendar.walk("VEVENT"):
        start = _event_time(component, "DTSTART", tz, "start")
        if start is None:
            raise InvalidTimestamp("start", None)

        end = _event_time(component, "DTEND", tz, "end")
        if end is None and "DURATION" in component:
            end = start + component.decoded("DURATION")

        events.append(CalendarEvent(
            title=_text(component, "SUMMARY") or "",
            start=start,
            end=end or start,
            location=_text(component, "LOCATION"),
            description=_text(component, "DESCRIPTION"),
        ))

    logger.debug(f"Decoded {len(events)} events")
    return events
