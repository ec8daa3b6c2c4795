"""iCalendar (RFC 5545) encoding for extracted calendar events."""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Optional, Sequence

import pytz

from .models import CalendarEvent, EventOrderError, InvalidTimestamp, TimeValue, to_utc

logger = logging.getLogger(__name__)

CRLF = "\r\n"
MAX_LINE_OCTETS = 75

UID_STRATEGIES = ("sequence", "content")
END_POLICIES = ("allow", "reject", "clamp")
INVALID_POLICIES = ("skip", "raise")


@dataclass(frozen=True)
class EncoderOptions:
    """Knobs for encode(). Defaults come from Config.encoder_options()."""
    product_name: str = "SnapCal"
    uid_namespace: str = "snapcal"
    uid_strategy: str = "sequence"  # 'sequence' or 'content'
    escape_text: bool = True
    end_policy: str = "allow"  # 'allow', 'reject' or 'clamp'
    on_invalid: str = "skip"  # 'skip' or 'raise'
    fold_lines: bool = True

    def __post_init__(self):
        if self.uid_strategy not in UID_STRATEGIES:
            raise ValueError(f"Unknown uid_strategy: {self.uid_strategy!r}")
        if self.end_policy not in END_POLICIES:
            raise ValueError(f"Unknown end_policy: {self.end_policy!r}")
        if self.on_invalid not in INVALID_POLICIES:
            raise ValueError(f"Unknown on_invalid policy: {self.on_invalid!r}")


@dataclass
class EncodeResult:
    """An encoded document plus the events that had to be left out."""
    document: str
    event_count: int
    skipped: list[InvalidTimestamp] = field(default_factory=list)


def _basic_utc(dt: datetime) -> str:
    # strftime("%Y") does not zero-pad years before 1000 on every platform
    return (
        f"{dt.year:04d}{dt.month:02d}{dt.day:02d}"
        f"T{dt.hour:02d}{dt.minute:02d}{dt.second:02d}Z"
    )


def format_ics_datetime(value: TimeValue, tz: Optional[tzinfo] = None) -> str:
    """Render a time as UTC basic format, e.g. 20250310T090000Z."""
    return _basic_utc(to_utc(value, tz))


def escape_text(value: str) -> str:
    """Escape a TEXT property value."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """
    Fold a content line longer than ``limit`` octets.

    Continuation lines start with a single space, which counts towards their
    length. Multi-byte UTF-8 characters are never split.
    """
    if len(line.encode("utf-8")) <= limit:
        return line

    parts = []
    current = ""
    size = 0
    width = limit
    for char in line:
        char_size = len(char.encode("utf-8"))
        if size + char_size > width:
            parts.append(current)
            current = ""
            size = 0
            width = limit - 1
        current += char
        size += char_size
    parts.append(current)
    return (CRLF + " ").join(parts)


def _uid_token(event: CalendarEvent, start: datetime, end: datetime,
               now: datetime, strategy: str) -> str:
    if strategy == "content":
        key = "|".join([
            event.title,
            _basic_utc(start),
            _basic_utc(end),
        ])
        return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]
    return str(int(now.timestamp() * 1000))


def _event_lines(
    event: CalendarEvent,
    index: int,
    now: datetime,
    options: EncoderOptions,
    tz: tzinfo
) -> list[str]:
    start = to_utc(event.start, tz, "start")
    end = to_utc(event.end, tz, "end")

    if end < start:
        if options.end_policy == "reject":
            raise EventOrderError(event.title, start, end, index)
        if options.end_policy == "clamp":
            logger.warning(f"Event {index} ends before it starts, clamping end to start")
            end = start

    def text(value: str) -> str:
        return escape_text(value) if options.escape_text else value

    token = _uid_token(event, start, end, now, options.uid_strategy)
    lines = [
        "BEGIN:VEVENT",
        f"UID:{token}-{index}@{options.uid_namespace}",
        f"DTSTAMP:{_basic_utc(now)}",
        f"DTSTART:{_basic_utc(start)}",
        f"DTEND:{_basic_utc(end)}",
        f"SUMMARY:{text(event.title)}",
    ]
    if event.location:
        lines.append(f"LOCATION:{text(event.location)}")
    if event.description:
        lines.append(f"DESCRIPTION:{text(event.description)}")
    lines.append("END:VEVENT")
    return lines


def encode_with_report(
    events: Sequence[CalendarEvent],
    now: TimeValue,
    *,
    options: Optional[EncoderOptions] = None,
    tz: Optional[tzinfo] = None
) -> EncodeResult:
    """
    Encode events into an iCalendar document.

    Args:
        events: Events in display order; may be empty.
        now: Generation time, used for DTSTAMP and to seed UIDs.
        options: Encoding options (defaults: EncoderOptions()).
        tz: Timezone for naive times (default: UTC).

    Returns:
        EncodeResult with the CRLF-terminated document and any events that
        were skipped for invalid timestamps.

    Raises:
        InvalidTimestamp: If ``now`` is invalid, or an event time is invalid
            and options.on_invalid is 'raise'.
        EventOrderError: If an event ends before it starts and
            options.end_policy is 'reject'.
    """
    options = options or EncoderOptions()
    tz = tz or pytz.utc
    generated_at = to_utc(now, tz, "now")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{options.product_name}//EN",
        "CALSCALE:GREGORIAN",
    ]
    skipped = []
    count = 0

    for index, event in enumerate(events):
        try:
            lines.extend(_event_lines(event, index, generated_at, options, tz))
            count += 1
        except InvalidTimestamp as e:
            e.at_index(index)
            if options.on_invalid == "raise":
                raise
            logger.warning(f"Skipping {event.title!r}: {e}")
            skipped.append(e)

    lines.append("END:VCALENDAR")

    if options.fold_lines:
        lines = [fold_line(line) for line in lines]

    return EncodeResult(
        document=CRLF.join(lines) + CRLF,
        event_count=count,
        skipped=skipped,
    )


def encode(
    events: Sequence[CalendarEvent],
    now: TimeValue,
    *,
    options: Optional[EncoderOptions] = None,
    tz: Optional[tzinfo] = None
) -> str:
    """Encode events into an iCalendar document string. See encode_with_report()."""
    return encode_with_report(events, now, options=options, tz=tz).document
