"""Turn extracted events into a delivered .ics file."""

import logging
from datetime import datetime
from typing import Optional, Sequence

import pytz

from .config import config
from .ics.encoder import EncodeResult, encode_with_report
from .ics.models import CalendarEvent, EventOrderError, InvalidTimestamp, parse_event_time
from .ics.sink import ICS_MIME_TYPE, FileSink, SinkResult, safe_filename
from .utils.error_handlers import EncodeError

logger = logging.getLogger(__name__)


def export_events(
    events: Sequence[CalendarEvent],
    sink: FileSink,
    filename: Optional[str] = None,
    now: Optional[datetime] = None
) -> tuple[EncodeResult, SinkResult]:
    """
    Encode events with the configured options and hand the file to a sink.

    Raises:
        EncodeError: If encoding aborts (on_invalid='raise' or end_policy='reject').
    """
    now = now or datetime.now(pytz.utc)
    try:
        result = encode_with_report(
            events,
            now,
            options=config.encoder_options(),
            tz=config.get_timezone(),
        )
    except (InvalidTimestamp, EventOrderError) as e:
        raise EncodeError(e) from e

    name = safe_filename(filename or config.ICS_FILENAME)
    sink_result = sink.write(name, ICS_MIME_TYPE, result.document)
    if sink_result.ok:
        logger.info(f"Exported {result.event_count} events to {sink_result.location}")
    else:
        logger.error(f"Failed to deliver {name}: {sink_result.error}")
    return result, sink_result


def export_calendar_text(calendar: str, sink: FileSink, filename: Optional[str] = None) -> SinkResult:
    """Deliver an already-encoded calendar (e.g. one written by the model)."""
    name = safe_filename(filename or config.ICS_FILENAME)
    return sink.write(name, ICS_MIME_TYPE, calendar)


def _format_when(event: CalendarEvent) -> str:
    tz = config.get_timezone()
    try:
        start = parse_event_time(event.start, tz, "start")
        end = parse_event_time(event.end, tz, "end")
    except InvalidTimestamp:
        return f"{event.start} - {event.end} (invalid time)"

    if start.date() == end.date():
        return f"{start.strftime('%a %d %b %Y, %H:%M')} - {end.strftime('%H:%M')}"
    return f"{start.strftime('%a %d %b %Y, %H:%M')} - {end.strftime('%a %d %b %Y, %H:%M')}"


def format_event_preview(events: Sequence[CalendarEvent]) -> str:
    """Human-readable list of events for review before download."""
    if not events:
        return "No events found in the image. Please try a clearer photo."

    lines = [f"Found {len(events)} event{'s' if len(events) != 1 else ''}:", ""]
    for i, event in enumerate(events, 1):
        lines.append(f"{i}. {event.title}")
        lines.append(f"   {_format_when(event)}")
        if event.location:
            lines.append(f"   Location: {event.location}")
        if event.description:
            lines.append(f"   {event.description}")
    return "\n".join(lines)
