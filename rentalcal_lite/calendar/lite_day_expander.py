"""Expand booking events from an iCalendar feed into individual booked days.

A rental feed publishes one VEVENT per reservation or blocked period. Guests
check in on DTSTART and leave on DTEND, so the booked days are every calendar
day in the half-open range [DTSTART, DTEND): the checkout day stays available
for the next arrival.

Instants are truncated to the calendar date they carry in the source. No
timezone reconciliation is attempted: ``DTSTART;TZID=Europe/Rome:20250110T150000``
books 2025-01-10 whatever zone the server runs in.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Optional

from icalendar import Calendar

from .lite_exceptions import ParseError
from .lite_models import BookingEvent, ExpansionResult

logger = logging.getLogger(__name__)

# Rental feeds are a few KB; anything past this is not a calendar we want to hold in memory
MAX_ICS_SIZE_BYTES = 10 * 1024 * 1024

ONE_DAY = timedelta(days=1)


def _decode_instant(component: Any, prop_name: str) -> Optional[date]:
    """Return the decoded date/datetime of a DTSTART/DTEND property.

    Returns None when the property is absent. Raises ParseError when the
    property exists but does not hold a date or datetime value.
    """
    prop = component.get(prop_name)
    if prop is None:
        return None

    # Newer icalendar keeps unparsable values as broken properties that raise on .dt
    try:
        value = prop.dt
    except (AttributeError, ValueError) as e:
        raise ParseError(f"{prop_name} has an undecodable value: {e}") from e
    if not isinstance(value, date):
        raise ParseError(f"{prop_name} has an undecodable value: {prop!r}")
    return value


def parse_booking_events(ics_content: str) -> list[BookingEvent]:
    """Parse an iCalendar document into booking events.

    Only VEVENT components carrying both DTSTART and DTEND are returned;
    incomplete entries are skipped silently (logged at debug level).

    Args:
        ics_content: Raw iCalendar text, already checked for the VCALENDAR marker

    Returns:
        Booking events in document order

    Raises:
        ParseError: The document cannot be parsed or an event holds malformed dates
    """
    if len(ics_content.encode("utf-8")) > MAX_ICS_SIZE_BYTES:
        raise ParseError(f"ICS content exceeds {MAX_ICS_SIZE_BYTES} bytes")

    try:
        calendar = Calendar.from_ical(ics_content)
    except Exception as e:
        raise ParseError(f"Malformed iCalendar document: {e}") from e

    events: list[BookingEvent] = []
    skipped = 0

    for component in calendar.walk("VEVENT"):
        start = _decode_instant(component, "DTSTART")
        end = _decode_instant(component, "DTEND")
        if start is None or end is None:
            skipped += 1
            continue

        summary = component.get("SUMMARY")
        events.append(
            BookingEvent(start=start, end=end, summary=str(summary) if summary is not None else None)
        )

    if skipped:
        logger.debug("Skipped %d VEVENT components without DTSTART/DTEND", skipped)

    return events


def expand_event_days(event: BookingEvent) -> list[date]:
    """List the booked days of a single event, checkout day excluded.

    An event whose end day is not after its start day books nothing.
    """
    days = []
    current = event.start_day
    end_day = event.end_day
    while current < end_day:
        days.append(current)
        current += ONE_DAY
    return days


def expand_to_booked_days(ics_content: str) -> ExpansionResult:
    """Turn a calendar document into the sorted, deduplicated set of booked days.

    Args:
        ics_content: Raw iCalendar text

    Returns:
        ExpansionResult with booked days ascending and the number of qualifying
        events. A calendar with no bookings yields an empty result, which is
        a success.

    Raises:
        ParseError: The document is structurally malformed
    """
    events = parse_booking_events(ics_content)

    booked: set[date] = set()
    for index, event in enumerate(events, start=1):
        logger.debug(
            "Event %d: summary=%s start=%s end=%s",
            index,
            event.summary or "N/A",
            event.start_day.isoformat(),
            event.end_day.isoformat(),
        )
        booked.update(expand_event_days(event))

    return ExpansionResult(booked_days=tuple(sorted(booked)), event_count=len(events))
