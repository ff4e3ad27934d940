"""Exception hierarchy for calendar synchronization failures.

Every failure that can happen while refreshing the booked-day cache derives
from CalendarSyncError so the availability cache can catch them in one place
and turn them into its fallback-or-fail decision.
"""

from __future__ import annotations

from typing import Optional


class CalendarSyncError(Exception):
    """Base exception for all calendar synchronization errors."""


class FetchError(CalendarSyncError):
    """The calendar feed could not be retrieved from upstream.

    Raised when:
    - The upstream answers with a non-success HTTP status
    - The transport fails (DNS, connection refused, TLS, ...)
    - The configured URL is rejected by validation

    Attributes:
        status_code: HTTP status code, if the upstream answered at all
        reason: HTTP reason phrase or transport error description
    """

    def __init__(
        self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class FetchTimeoutError(FetchError):
    """The upstream did not answer within the configured timeout."""


class FormatError(CalendarSyncError):
    """The payload was fetched but is not an iCalendar document.

    Raised when the body lacks the mandatory BEGIN:VCALENDAR marker,
    regardless of the HTTP status it came with.
    """


class ParseError(CalendarSyncError):
    """The iCalendar document is structurally malformed.

    Raised when the icalendar parser rejects the document or an event carries
    a DTSTART/DTEND value that cannot be decoded. Treated like FormatError
    for fallback purposes.
    """
