"""Image parsing: calendar photos to events or ready-made ICS."""

import json
import logging
import re
from datetime import timedelta
from typing import Optional

from .gemini_client import get_gemini_client
from ..config import config
from ..ics.decoder import extract_calendar
from ..ics.models import CalendarEvent
from ..utils.error_handlers import ImageParseError, UnsupportedFileError

logger = logging.getLogger(__name__)


EVENTS_PROMPT = """Analyze this calendar image and extract all events. For each event, identify:
- Event title/name
- Start date and time
- End date and time (if available, otherwise assume 1 hour duration)
- Location (if mentioned)
- Description (if any)

Return ONLY a JSON array with no preamble or markdown formatting. Each event should have this structure:
[
  {
    "title": "Event Name",
    "start": "YYYY-MM-DDTHH:MM:SS",
    "end": "YYYY-MM-DDTHH:MM:SS",
    "location": "Location (optional)",
    "description": "Description (optional)"
  }
]

If you cannot parse any events, return an empty array: []"""

ICS_PROMPT = """Analyze this image and extract any calendar events, appointments, schedules, or important dates shown.
For each event found, generate an ICS (iCalendar) format entry. Include realistic times and durations based on context clues.
Return ONLY valid ICS format content that can be imported directly into a calendar application.
Start with BEGIN:VCALENDAR and end with END:VCALENDAR.
If no events are found, create a sample ICS with one generic event based on the image content."""


def is_supported_image(mime_type: Optional[str]) -> bool:
    """Only image/* uploads are sent to the model."""
    return bool(mime_type) and mime_type.lower().startswith("image/")


def clean_json_response(response: str) -> str:
    """Remove markdown code blocks and any prose around the JSON payload."""
    if not response:
        return ""

    # Remove markdown code blocks
    response = re.sub(r"```json\s*", "", response)
    response = re.sub(r"```\s*", "", response)
    response = response.strip()

    # Keep only the outermost array/object
    starts = [pos for pos in (response.find("["), response.find("{")) if pos != -1]
    if not starts:
        return response
    start = min(starts)
    closing = "]" if response[start] == "[" else "}"
    end = response.rfind(closing)
    if end > start:
        return response[start:end + 1]
    return response[start:]


def parse_json_safely(response: str) -> Optional[list | dict]:
    """Safely parse JSON from a Gemini response."""
    try:
        cleaned = clean_json_response(response)
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON: {e}")
        logger.debug(f"Raw response: {response}")
        return None


def events_from_json(data: list) -> list[CalendarEvent]:
    """Turn a JSON array from the model into CalendarEvents, dropping unusable items."""
    duration = timedelta(minutes=config.DEFAULT_EVENT_MINUTES)
    events = []
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object event at position {position}: {item!r}")
            continue
        if not item.get("start"):
            logger.warning(f"Skipping event without start time: {item.get('title', 'Unknown')}")
            continue
        events.append(CalendarEvent.from_dict(item, default_duration=duration))
    return events


async def parse_calendar_image(image_bytes: bytes, mime_type: str = "image/jpeg") -> list[CalendarEvent]:
    """
    Extract calendar events from a photo.

    Args:
        image_bytes: Raw bytes of the image.
        mime_type: MIME type of the image.

    Returns:
        List of CalendarEvent objects (empty if the model found none).

    Raises:
        UnsupportedFileError: If mime_type is not an image type.
        ImageParseError: If the model gave no usable JSON array.
    """
    if not is_supported_image(mime_type):
        raise UnsupportedFileError(mime_type)

    client = get_gemini_client()
    response = await client.send_image_with_json(image_bytes, EVENTS_PROMPT, mime_type)
    if not response:
        raise ImageParseError("No response from Gemini for calendar parsing")

    data = parse_json_safely(response)
    if isinstance(data, dict):
        # Some replies wrap the list, e.g. {"events": [...]}
        data = data.get("events", [data])
    if not isinstance(data, list):
        raise ImageParseError("Invalid calendar parsing response format")

    events = events_from_json(data)
    logger.info(f"Parsed {len(events)} events from calendar image")
    return events


async def generate_ics_from_image(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """
    Ask the model to write the whole calendar file for a photo.

    Returns:
        The VCALENDAR block from the reply, CRLF line endings.

    Raises:
        UnsupportedFileError: If mime_type is not an image type.
        ImageParseError: If the reply contains no VCALENDAR block.
    """
    if not is_supported_image(mime_type):
        raise UnsupportedFileError(mime_type)

    client = get_gemini_client()
    response = await client.send_image(image_bytes, ICS_PROMPT, mime_type)
    if not response:
        raise ImageParseError("No response from Gemini for ICS generation")

    calendar = extract_calendar(response)
    if calendar is None:
        raise ImageParseError("Gemini reply contained no VCALENDAR block")

    logger.info(f"Received {len(calendar)} characters of ICS from Gemini")
    return calendar
