"""Command-line interface: photos or JSON event lists to .ics files."""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional

from .config import config, Config
from .ai.course_recommender import StudentProfile, format_recommendations, recommend_courses
from .ai.image_parser import events_from_json, generate_ics_from_image, parse_calendar_image
from .export import export_calendar_text, export_events, format_event_preview
from .ics.sink import LocalFileSink
from .utils.error_handlers import SnapCalError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapcal",
        description="Turn calendar photos into importable .ics files"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    encode_parser = subparsers.add_parser("encode", help="Encode a JSON list of events")
    encode_parser.add_argument("events_file", type=Path, help="JSON file with an array of events")
    encode_parser.add_argument("-o", "--output-dir", type=Path, default=None)
    encode_parser.add_argument("--filename", default=None, help="Output file name (.ics)")

    photo_parser = subparsers.add_parser("photo", help="Extract events from an image")
    photo_parser.add_argument("image", type=Path, help="Calendar photo")
    photo_parser.add_argument("-o", "--output-dir", type=Path, default=None)
    photo_parser.add_argument("--filename", default=None, help="Output file name (.ics)")
    photo_parser.add_argument("--raw", action="store_true",
                              help="Let the model write the ICS instead of encoding locally")

    courses_parser = subparsers.add_parser("courses", help="Recommend courses from a profile")
    courses_parser.add_argument("profile", type=Path, help="Text file with 'key: value' lines")
    courses_parser.add_argument("--limit", type=int, default=5)

    return parser


def _sink(output_dir: Optional[Path]) -> LocalFileSink:
    return LocalFileSink(output_dir or Path(config.OUTPUT_DIR))


def _require_gemini() -> None:
    missing = Config.validate(require_telegram=False)
    if missing:
        raise SnapCalError(
            f"Missing configuration: {', '.join(missing)}",
            f"Missing required configuration: {', '.join(missing)}. Please check your .env file."
        )


def _report(result, sink_result) -> int:
    if not sink_result.ok:
        print(f"Failed to write calendar: {sink_result.error}", file=sys.stderr)
        return 1
    for skipped in result.skipped:
        print(f"Warning: {skipped} (skipped)", file=sys.stderr)
    print(f"Wrote {result.event_count} events to {sink_result.location}")
    return 0


def cmd_encode(args) -> int:
    try:
        data = json.loads(args.events_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read events: {e}", file=sys.stderr)
        return 1
    if not isinstance(data, list):
        print("Events file must contain a JSON array", file=sys.stderr)
        return 1

    events = events_from_json(data)
    return _report(*export_events(events, _sink(args.output_dir), args.filename))


def cmd_photo(args) -> int:
    _require_gemini()
    mime_type = mimetypes.guess_type(args.image.name)[0] or "application/octet-stream"
    try:
        image_bytes = args.image.read_bytes()
    except OSError as e:
        print(f"Could not read image: {e}", file=sys.stderr)
        return 1

    if args.raw:
        calendar = asyncio.run(generate_ics_from_image(image_bytes, mime_type))
        sink_result = export_calendar_text(calendar, _sink(args.output_dir), args.filename)
        if not sink_result.ok:
            print(f"Failed to write calendar: {sink_result.error}", file=sys.stderr)
            return 1
        print(f"Wrote model-generated calendar to {sink_result.location}")
        return 0

    events = asyncio.run(parse_calendar_image(image_bytes, mime_type))
    print(format_event_preview(events))
    if not events:
        return 1
    return _report(*export_events(events, _sink(args.output_dir), args.filename))


def cmd_courses(args) -> int:
    _require_gemini()
    try:
        text = args.profile.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Could not read profile: {e}", file=sys.stderr)
        return 1

    recommendations = asyncio.run(recommend_courses(StudentProfile.from_text(text), args.limit))
    print(format_recommendations(recommendations))
    return 0


COMMANDS = {
    "encode": cmd_encode,
    "photo": cmd_photo,
    "courses": cmd_courses,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=logging.DEBUG if args.verbose else logging.WARNING, log_to_file=False)

    try:
        return COMMANDS[args.command](args)
    except SnapCalError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(e.user_message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
