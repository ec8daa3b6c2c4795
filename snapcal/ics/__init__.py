# iCalendar encoding, decoding and delivery
from .models import (
    CalendarEvent,
    InvalidTimestamp,
    EventOrderError,
    parse_event_time,
    to_utc,
)
from .encoder import (
    EncoderOptions,
    EncodeResult,
    encode,
    encode_with_report,
    escape_text,
    fold_line,
    format_ics_datetime,
)
from .decoder import ICSParseError, decode, extract_calendar
from .sink import (
    FileSink,
    SinkResult,
    LocalFileSink,
    MemorySink,
    ICS_MIME_TYPE,
    safe_filename,
)
