"""Calendar event value objects and timestamp parsing."""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Union

import pytz

TimeValue = Union[str, datetime]

DEFAULT_EVENT_DURATION = timedelta(hours=1)
DEFAULT_TITLE = "Untitled Event"


class InvalidTimestamp(ValueError):
    """A start/end value could not be read as a point in time."""

    def __init__(self, field: str, value: object, index: Optional[int] = None):
        self.field = field
        self.value = value
        self.index = index
        super().__init__(self._message())

    def _message(self) -> str:
        where = f" (event {self.index})" if self.index is not None else ""
        return f"Invalid {self.field} timestamp{where}: {self.value!r}"

    def at_index(self, index: int) -> "InvalidTimestamp":
        """Record which event failed and refresh the message."""
        self.index = index
        self.args = (self._message(),)
        return self


class EventOrderError(ValueError):
    """An event ends before it starts."""

    def __init__(self, title: str, start: datetime, end: datetime, index: Optional[int] = None):
        self.title = title
        self.start = start
        self.end = end
        self.index = index
        super().__init__(f"Event {title!r} ends ({end.isoformat()}) before it starts ({start.isoformat()})")


@dataclass(frozen=True)
class CalendarEvent:
    """One event extracted from an image, ready to be encoded."""
    title: str
    start: TimeValue  # ISO local date-time, e.g. 2025-03-10T09:00:00
    end: TimeValue
    location: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(
        cls,
        data: dict,
        default_duration: timedelta = DEFAULT_EVENT_DURATION
    ) -> "CalendarEvent":
        """
        Build an event from a model-produced JSON object.

        A missing end is filled in as start + default_duration. When the
        start itself is unreadable it is kept as-is so the encoder can report
        it as an InvalidTimestamp.
        """
        title = str(data.get("title") or "").strip() or DEFAULT_TITLE
        start = data.get("start")
        end = data.get("end")

        if not end and start:
            try:
                end = (_parse_iso(start) + default_duration).isoformat()
            except (AttributeError, TypeError, ValueError):
                end = start

        return cls(
            title=title,
            start=start,
            end=end,
            location=_optional_text(data.get("location")),
            description=_optional_text(data.get("description")),
        )

    def to_dict(self) -> dict:
        """Plain dict with datetimes rendered as ISO strings."""
        data = asdict(self)
        for key in ("start", "end"):
            if isinstance(data[key], datetime):
                data[key] = data[key].isoformat()
        return data


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_iso(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def localize(dt: datetime, tz: tzinfo) -> datetime:
    """Attach a timezone to a naive datetime (pytz zones need localize())."""
    if hasattr(tz, "localize"):
        return tz.localize(dt)
    return dt.replace(tzinfo=tz)


def parse_event_time(value: TimeValue, tz: Optional[tzinfo] = None, field: str = "start") -> datetime:
    """
    Read an event time as an aware datetime.

    Args:
        value: A datetime or an ISO-8601-like string. Strings without an
            offset (and naive datetimes) are read as local time in ``tz``.
        tz: Local timezone (default: UTC).
        field: Name used in the error message.

    Returns:
        Timezone-aware datetime.

    Raises:
        InvalidTimestamp: If the value is empty or not a valid date-time.
    """
    tz = tz or pytz.utc

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = _parse_iso(value)
        except ValueError:
            raise InvalidTimestamp(field, value) from None
    else:
        raise InvalidTimestamp(field, value)

    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        try:
            dt = localize(dt, tz)
        except OverflowError:
            raise InvalidTimestamp(field, value) from None
    return dt


def to_utc(value: TimeValue, tz: Optional[tzinfo] = None, field: str = "start") -> datetime:
    """
    Parse an event time and convert it to UTC.

    Raises:
        InvalidTimestamp: Also when the UTC instant falls outside year 1..9999.
    """
    try:
        return parse_event_time(value, tz, field).astimezone(pytz.utc)
    except OverflowError:
        raise InvalidTimestamp(field, value) from None
