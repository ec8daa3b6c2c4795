"""Tests for iCalendar encoding."""

import re
from datetime import datetime

import pytest
import pytz

from snapcal.ics.encoder import (
    EncoderOptions,
    encode,
    encode_with_report,
    escape_text,
    fold_line,
    format_ics_datetime,
)
from snapcal.ics.models import CalendarEvent, EventOrderError, InvalidTimestamp

NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=pytz.utc)
ICS_TIME = re.compile(r"^\d{8}T\d{6}Z$")


def lines_of(document: str) -> list[str]:
    """Split a document on CRLF, dropping the final empty entry."""
    assert document.endswith("\r\n")
    return document[:-2].split("\r\n")


@pytest.fixture
def midterm():
    return CalendarEvent(
        title="Midterm",
        start="2025-03-10T09:00:00",
        end="2025-03-10T10:30:00",
    )


@pytest.fixture
def week_events():
    return [
        CalendarEvent("Lecture", "2025-03-10T09:00:00", "2025-03-10T10:00:00", location="Room 101"),
        CalendarEvent("Lab", "2025-03-11T14:00:00", "2025-03-11T16:00:00", description="Bring laptop"),
        CalendarEvent("Seminar", "2025-03-12T11:00:00", "2025-03-12T12:00:00"),
    ]


class TestFormatDatetime:
    """Tests for the UTC basic-format timestamp."""

    def test_naive_string_is_utc_by_default(self):
        assert format_ics_datetime("2025-03-10T09:00:00") == "20250310T090000Z"

    def test_local_timezone_converted_to_utc(self):
        tz = pytz.timezone("Asia/Kuala_Lumpur")
        assert format_ics_datetime("2025-03-10T09:00:00", tz) == "20250310T010000Z"

    def test_explicit_offset_wins_over_local_timezone(self):
        tz = pytz.timezone("Asia/Kuala_Lumpur")
        assert format_ics_datetime("2025-03-10T09:00:00+02:00", tz) == "20250310T070000Z"

    def test_trailing_z(self):
        assert format_ics_datetime("2025-03-10T09:00:00Z") == "20250310T090000Z"

    def test_fractional_seconds_dropped(self):
        assert format_ics_datetime("2025-03-10T09:00:00.750") == "20250310T090000Z"

    def test_datetime_input(self):
        assert format_ics_datetime(datetime(2025, 12, 31, 23, 59, 59)) == "20251231T235959Z"

    def test_invalid_raises(self):
        with pytest.raises(InvalidTimestamp):
            format_ics_datetime("next tuesday")

    def test_years_before_1000_zero_padded(self):
        value = format_ics_datetime("0999-03-10T09:00:00")

        assert value == "09990310T090000Z"
        assert ICS_TIME.match(value)

    def test_local_time_before_year_1_in_utc(self):
        with pytest.raises(InvalidTimestamp):
            format_ics_datetime("0001-01-01T00:00:00", pytz.timezone("Asia/Tokyo"))

    def test_offset_past_year_9999_in_utc(self):
        with pytest.raises(InvalidTimestamp):
            format_ics_datetime("9999-12-31T23:00:00-05:00")


class TestEscapeText:
    """Tests for TEXT value escaping."""

    def test_comma_and_semicolon(self):
        assert escape_text("Lunch, then class; maybe") == "Lunch\\, then class\\; maybe"

    def test_backslash_escaped_first(self):
        assert escape_text("a\\b,c") == "a\\\\b\\,c"

    def test_newlines(self):
        assert escape_text("one\ntwo\r\nthree") == "one\\ntwo\\nthree"

    def test_plain_text_unchanged(self):
        assert escape_text("Midterm") == "Midterm"


class TestFoldLine:
    """Tests for 75-octet line folding."""

    def test_short_line_untouched(self):
        line = "SUMMARY:Midterm"
        assert fold_line(line) == line

    def test_long_line_folded(self):
        line = "DESCRIPTION:" + "a" * 200
        folded = fold_line(line)
        parts = folded.split("\r\n")

        assert len(parts) > 1
        assert all(len(part.encode("utf-8")) <= 75 for part in parts)
        assert all(part.startswith(" ") for part in parts[1:])
        assert parts[0] + "".join(part[1:] for part in parts[1:]) == line

    def test_multibyte_characters_not_split(self):
        line = "SUMMARY:" + "日本語のイベント" * 10
        parts = fold_line(line).split("\r\n")

        assert all(len(part.encode("utf-8")) <= 75 for part in parts)
        assert parts[0] + "".join(part[1:] for part in parts[1:]) == line


class TestEncode:
    """Tests for document encoding."""

    def test_midterm_scenario(self, midterm):
        document = encode([midterm], NOW)
        lines = lines_of(document)

        assert "SUMMARY:Midterm" in lines
        assert "DTSTART:20250310T090000Z" in lines
        assert "DTEND:20250310T103000Z" in lines
        assert "DTSTAMP:20250101T000000Z" in lines

    def test_empty_event_list(self):
        document = encode([], NOW)

        assert lines_of(document) == [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//SnapCal//EN",
            "CALSCALE:GREGORIAN",
            "END:VCALENDAR",
        ]
        assert "VEVENT" not in document

    def test_document_shell(self, week_events):
        lines = lines_of(encode(week_events, NOW))

        assert lines[0] == "BEGIN:VCALENDAR"
        assert lines[1] == "VERSION:2.0"
        assert lines[2].startswith("PRODID:-//")
        assert lines[-1] == "END:VCALENDAR"

    def test_every_line_ends_with_crlf(self, week_events):
        document = encode(week_events, NOW)
        assert "\n" not in document.replace("\r\n", "")

    def test_one_block_per_event_in_order(self, week_events):
        lines = lines_of(encode(week_events, NOW))

        assert lines.count("BEGIN:VEVENT") == 3
        assert lines.count("END:VEVENT") == 3
        summaries = [line for line in lines if line.startswith("SUMMARY:")]
        assert summaries == ["SUMMARY:Lecture", "SUMMARY:Lab", "SUMMARY:Seminar"]

    def test_blocks_are_paired(self, week_events):
        depth = 0
        for line in lines_of(encode(week_events, NOW)):
            if line == "BEGIN:VEVENT":
                assert depth == 0
                depth += 1
            elif line == "END:VEVENT":
                assert depth == 1
                depth -= 1
        assert depth == 0

    def test_timestamps_match_basic_format(self, week_events):
        for line in lines_of(encode(week_events, NOW)):
            name, _, value = line.partition(":")
            if name in ("DTSTART", "DTEND", "DTSTAMP"):
                assert ICS_TIME.match(value), line

    def test_sequence_uid(self, week_events):
        lines = lines_of(encode(week_events, NOW))
        uids = [line for line in lines if line.startswith("UID:")]

        assert uids == [
            "UID:1735689600000-0@snapcal",
            "UID:1735689600000-1@snapcal",
            "UID:1735689600000-2@snapcal",
        ]

    def test_optional_fields(self, week_events):
        lines = lines_of(encode(week_events, NOW))

        assert "LOCATION:Room 101" in lines
        assert "DESCRIPTION:Bring laptop" in lines
        assert sum(line.startswith("LOCATION:") for line in lines) == 1
        assert sum(line.startswith("DESCRIPTION:") for line in lines) == 1

    def test_empty_location_treated_as_absent(self):
        event = CalendarEvent("Quiz", "2025-03-10T09:00:00", "2025-03-10T09:30:00", location="", description="")
        document = encode([event], NOW)

        assert "LOCATION:" not in document
        assert "DESCRIPTION:" not in document

    def test_comma_in_title_is_escaped(self):
        event = CalendarEvent("Lunch, then class", "2025-03-10T12:00:00", "2025-03-10T13:00:00")
        lines = lines_of(encode([event], NOW))

        assert "SUMMARY:Lunch\\, then class" in lines

    def test_escaping_can_be_disabled(self):
        event = CalendarEvent("Lunch, then class", "2025-03-10T12:00:00", "2025-03-10T13:00:00")
        lines = lines_of(encode([event], NOW, options=EncoderOptions(escape_text=False)))

        assert "SUMMARY:Lunch, then class" in lines

    def test_custom_product_and_namespace(self, midterm):
        options = EncoderOptions(product_name="Calendar Photo Converter", uid_namespace="calendar-converter")
        document = encode([midterm], NOW, options=options)

        assert "PRODID:-//Calendar Photo Converter//EN" in document
        assert "-0@calendar-converter" in document

    def test_local_timezone(self, midterm):
        tz = pytz.timezone("America/New_York")
        lines = lines_of(encode([midterm], NOW, tz=tz))

        # March 10 2025 is after the DST switch (UTC-4)
        assert "DTSTART:20250310T130000Z" in lines
        assert "DTEND:20250310T143000Z" in lines

    def test_naive_now_read_in_local_timezone(self, midterm):
        tz = pytz.timezone("Asia/Kuala_Lumpur")
        document = encode([midterm], datetime(2025, 1, 1, 8, 0, 0), tz=tz)

        assert "DTSTAMP:20250101T000000Z" in document

    def test_same_inputs_same_output(self, week_events):
        assert encode(week_events, NOW) == encode(week_events, NOW)

    def test_long_description_folded(self):
        event = CalendarEvent("Talk", "2025-03-10T09:00:00", "2025-03-10T10:00:00", description="x" * 300)
        document = encode([event], NOW)

        assert all(len(line.encode("utf-8")) <= 75 for line in document.split("\r\n"))

    def test_folding_can_be_disabled(self):
        event = CalendarEvent("Talk", "2025-03-10T09:00:00", "2025-03-10T10:00:00", description="x" * 300)
        document = encode([event], NOW, options=EncoderOptions(fold_lines=False))

        assert "DESCRIPTION:" + "x" * 300 + "\r\n" in document


class TestUidStrategy:
    """Tests for content-derived UIDs."""

    def test_content_uid_stable_across_runs(self, midterm):
        options = EncoderOptions(uid_strategy="content")
        first = encode([midterm], NOW, options=options)
        second = encode([midterm], datetime(2025, 6, 1, tzinfo=pytz.utc), options=options)

        uid = [line for line in lines_of(first) if line.startswith("UID:")]
        assert uid == [line for line in lines_of(second) if line.startswith("UID:")]

    def test_content_uid_differs_per_event(self, week_events):
        options = EncoderOptions(uid_strategy="content")
        lines = lines_of(encode(week_events, NOW, options=options))
        tokens = [line.split(":")[1].split("-")[0] for line in lines if line.startswith("UID:")]

        assert len(set(tokens)) == 3

    def test_sequence_uid_changes_with_now(self, midterm):
        first = encode([midterm], NOW)
        second = encode([midterm], datetime(2025, 1, 1, 0, 0, 1, tzinfo=pytz.utc))

        assert "UID:1735689600000-0@snapcal" in first
        assert "UID:1735689601000-0@snapcal" in second


class TestInvalidTimestamps:
    """Tests for unparseable start/end values."""

    @pytest.fixture
    def mixed_events(self):
        return [
            CalendarEvent("Good", "2025-03-10T09:00:00", "2025-03-10T10:00:00"),
            CalendarEvent("Bad", "sometime soon", "2025-03-10T10:00:00"),
            CalendarEvent("Also good", "2025-03-11T09:00:00", "2025-03-11T10:00:00"),
        ]

    def test_skip_is_default(self, mixed_events):
        result = encode_with_report(mixed_events, NOW)

        assert result.event_count == 2
        assert len(result.skipped) == 1
        assert result.skipped[0].index == 1
        assert result.skipped[0].field == "start"
        assert "SUMMARY:Bad" not in result.document

    def test_skipped_message_names_event(self, mixed_events):
        result = encode_with_report(mixed_events, NOW)

        assert "(event 1)" in str(result.skipped[0])

    def test_out_of_range_event_skipped(self, midterm):
        ancient = CalendarEvent("Ancient", "0001-01-01T00:00:00", "0001-01-01T01:00:00")

        result = encode_with_report([midterm, ancient], NOW, tz=pytz.timezone("Asia/Tokyo"))

        assert result.event_count == 1
        assert result.skipped[0].index == 1
        assert "SUMMARY:Ancient" not in result.document

    def test_early_year_event_encoded(self):
        event = CalendarEvent("Founding", "0800-12-25T10:00:00", "0800-12-25T11:00:00")
        lines = lines_of(encode([event], NOW))

        assert "DTSTART:08001225T100000Z" in lines
        assert "DTEND:08001225T110000Z" in lines

    def test_skipped_event_keeps_ordinal_gap(self, mixed_events):
        result = encode_with_report(mixed_events, NOW)

        assert "UID:1735689600000-0@snapcal" in result.document
        assert "UID:1735689600000-2@snapcal" in result.document

    def test_raise_policy(self, mixed_events):
        with pytest.raises(InvalidTimestamp) as exc_info:
            encode(mixed_events, NOW, options=EncoderOptions(on_invalid="raise"))
        assert exc_info.value.index == 1

    def test_missing_end(self):
        event = CalendarEvent("No end", "2025-03-10T09:00:00", None)
        result = encode_with_report([event], NOW)

        assert result.event_count == 0
        assert result.skipped[0].field == "end"

    def test_invalid_now_raises(self, midterm):
        with pytest.raises(InvalidTimestamp):
            encode([midterm], "not a time")


class TestEndPolicy:
    """Tests for events that end before they start."""

    @pytest.fixture
    def backwards(self):
        return CalendarEvent("Backwards", "2025-03-10T10:00:00", "2025-03-10T09:00:00")

    def test_allow_passes_through(self, backwards):
        lines = lines_of(encode([backwards], NOW))

        assert "DTSTART:20250310T100000Z" in lines
        assert "DTEND:20250310T090000Z" in lines

    def test_reject_raises(self, backwards):
        with pytest.raises(EventOrderError):
            encode([backwards], NOW, options=EncoderOptions(end_policy="reject"))

    def test_clamp_sets_end_to_start(self, backwards):
        lines = lines_of(encode([backwards], NOW, options=EncoderOptions(end_policy="clamp")))

        assert "DTSTART:20250310T100000Z" in lines
        assert "DTEND:20250310T100000Z" in lines

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            EncoderOptions(end_policy="bogus")
