"""Unit tests for rentalcal_lite.calendar.lite_day_expander."""

from datetime import date, datetime, timedelta, timezone

import pytest

from rentalcal_lite.calendar.lite_day_expander import (
    expand_event_days,
    expand_to_booked_days,
    parse_booking_events,
)
from rentalcal_lite.calendar.lite_exceptions import ParseError
from rentalcal_lite.calendar.lite_models import BookingEvent, to_calendar_day
from tests.fixtures.rental_ics_data import booking, make_ics

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def test_expand_when_single_booking_then_checkout_day_excluded(sample_ics_single: str) -> None:
    """A stay from the 10th to the 13th books the 10th, 11th and 12th only."""
    result = expand_to_booked_days(sample_ics_single)

    assert result.iso_days() == ["2025-01-10", "2025-01-11", "2025-01-12"]
    assert result.event_count == 1
    assert result.day_count == 3


def test_expand_when_bookings_overlap_then_days_counted_once(sample_ics_overlapping: str) -> None:
    """Overlapping stays yield their union, not the sum of their lengths."""
    result = expand_to_booked_days(sample_ics_overlapping)

    assert result.iso_days() == [
        "2025-02-01",
        "2025-02-02",
        "2025-02-03",
        "2025-02-04",
        "2025-02-05",
        "2025-02-06",
    ]
    assert result.event_count == 2


def test_expand_when_events_out_of_order_then_days_sorted() -> None:
    ics = make_ics(
        booking("late", "20250320", "20250322"),
        booking("early", "20250105", "20250107"),
        booking("mid", "20250214", "20250215"),
    )

    result = expand_to_booked_days(ics)

    assert list(result.booked_days) == sorted(result.booked_days)
    assert len(set(result.booked_days)) == len(result.booked_days)
    assert result.iso_days() == [
        "2025-01-05",
        "2025-01-06",
        "2025-02-14",
        "2025-03-20",
        "2025-03-21",
    ]


def test_expand_when_start_equals_end_then_no_days_but_event_counted() -> None:
    ics = make_ics(booking("zero", "20250110", "20250110"))

    result = expand_to_booked_days(ics)

    assert result.booked_days == ()
    assert result.event_count == 1


def test_expand_when_calendar_has_no_events_then_empty_success(sample_ics_empty: str) -> None:
    result = expand_to_booked_days(sample_ics_empty)

    assert result.booked_days == ()
    assert result.event_count == 0


def test_expand_when_event_lacks_dtend_then_excluded_from_days_and_count() -> None:
    ics = make_ics(
        booking("ok", "20250110", "20250112"),
        "UID:no-end@rentalcal.test\nDTSTART;VALUE=DATE:20250301\nSUMMARY:Incomplete",
        "UID:no-start@rentalcal.test\nDTEND;VALUE=DATE:20250401\nSUMMARY:Incomplete",
    )

    result = expand_to_booked_days(ics)

    assert result.event_count == 1
    assert result.iso_days() == ["2025-01-10", "2025-01-11"]


def test_expand_when_only_event_lacks_dtstart_then_empty_result() -> None:
    ics = make_ics("UID:no-start@rentalcal.test\nDTEND;VALUE=DATE:20250401\nSUMMARY:Incomplete")

    result = expand_to_booked_days(ics)

    assert result.booked_days == ()
    assert result.event_count == 0


def test_expand_when_non_event_components_then_ignored() -> None:
    ics = (
        "BEGIN:VCALENDAR\n"
        "VERSION:2.0\n"
        "PRODID:-//RentalCal Test//EN\n"
        "BEGIN:VTODO\n"
        "UID:todo@rentalcal.test\n"
        "DTSTART;VALUE=DATE:20250110\n"
        "DUE;VALUE=DATE:20250120\n"
        "END:VTODO\n"
        "BEGIN:VEVENT\n"
        f"{booking('b1', '20250601', '20250603')}\n"
        "END:VEVENT\n"
        "END:VCALENDAR\n"
    )

    result = expand_to_booked_days(ics)

    assert result.event_count == 1
    assert result.iso_days() == ["2025-06-01", "2025-06-02"]


def test_expand_when_booking_spans_month_and_year_boundary_then_contiguous() -> None:
    ics = make_ics(booking("nye", "20241230", "20250102"))

    result = expand_to_booked_days(ics)

    assert result.iso_days() == ["2024-12-30", "2024-12-31", "2025-01-01"]


def test_expand_when_timed_events_then_wall_clock_dates_used() -> None:
    """Timed instants are truncated to their own date; the checkout day is still free."""
    ics = make_ics(
        "UID:timed@rentalcal.test\n"
        "DTSTART:20250110T233000Z\n"
        "DTEND:20250112T090000Z\n"
        "SUMMARY:Late arrival"
    )

    result = expand_to_booked_days(ics)

    assert result.iso_days() == ["2025-01-10", "2025-01-11"]


def test_expand_when_floating_datetimes_then_dates_kept() -> None:
    ics = make_ics(
        "UID:floating@rentalcal.test\n"
        "DTSTART:20250301T150000\n"
        "DTEND:20250303T100000\n"
    )

    result = expand_to_booked_days(ics)

    assert result.iso_days() == ["2025-03-01", "2025-03-02"]


def test_expand_when_tzid_instants_then_source_wall_clock_dates_used() -> None:
    """A late-evening New York arrival stays on its own date even though it is the next day in UTC."""
    ics = make_ics(
        "UID:tzid@rentalcal.test\n"
        "DTSTART;TZID=America/New_York:20250110T230000\n"
        "DTEND;TZID=America/New_York:20250112T100000\n"
        "SUMMARY:Late arrival"
    )

    result = expand_to_booked_days(ics)

    assert result.iso_days() == ["2025-01-10", "2025-01-11"]


def test_expand_when_document_malformed_then_parse_error() -> None:
    with pytest.raises(ParseError):
        expand_to_booked_days("BEGIN:VCALENDAR\nVERSION:2.0\n")


def test_expand_when_dtstart_undecodable_then_parse_error() -> None:
    ics = make_ics(
        "UID:bad-date@rentalcal.test\nDTSTART;VALUE=DATE:2025XX01\nDTEND;VALUE=DATE:20250303"
    )

    with pytest.raises(ParseError):
        expand_to_booked_days(ics)


def test_parse_booking_events_keeps_summary() -> None:
    events = parse_booking_events(make_ics(booking("b1", "20250110", "20250111", summary="Airbnb")))

    assert len(events) == 1
    assert events[0].summary == "Airbnb"
    assert events[0].start_day == date(2025, 1, 10)
    assert events[0].end_day == date(2025, 1, 11)


def test_expand_event_days_when_end_before_start_then_empty() -> None:
    event = BookingEvent(start=date(2025, 5, 10), end=date(2025, 5, 8))

    assert expand_event_days(event) == []


def test_to_calendar_day_keeps_source_offset_date() -> None:
    """An evening instant west of UTC stays on its own date instead of moving to UTC's next day."""
    evening = datetime(2025, 1, 10, 22, 30, tzinfo=timezone(timedelta(hours=-5)))

    assert to_calendar_day(evening) == date(2025, 1, 10)
    assert to_calendar_day(date(2025, 1, 10)) == date(2025, 1, 10)
