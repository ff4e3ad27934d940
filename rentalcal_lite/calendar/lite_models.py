"""Data models for calendar availability processing - RentalCal Lite version."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# DTSTART/DTEND values arrive either as all-day dates or as datetimes
DateOrDateTime = Union[datetime, date]


class LiteICSSource(BaseModel):
    """Configuration for the upstream ICS calendar feed."""

    name: str = Field(default="rental", description="Human-readable name for this calendar source")
    url: str = Field(..., description="ICS calendar URL")

    timeout: int = Field(default=30, description="HTTP timeout in seconds")

    # Optional headers
    custom_headers: dict[str, str] = Field(default_factory=dict, description="Custom HTTP headers")

    model_config = ConfigDict(frozen=True)


class BookingEvent(BaseModel):
    """A single booking taken from a VEVENT.

    The interval is half-open: ``start`` is booked, ``end`` (checkout) is not.
    Values are kept exactly as the source wrote them, without any timezone
    conversion.
    """

    start: DateOrDateTime
    end: DateOrDateTime
    summary: Optional[str] = None

    @property
    def start_day(self) -> date:
        """Calendar day of the start instant, as written by the source."""
        return to_calendar_day(self.start)

    @property
    def end_day(self) -> date:
        """Calendar day of the end instant, as written by the source."""
        return to_calendar_day(self.end)


@dataclass(frozen=True)
class ExpansionResult:
    """Outcome of expanding a calendar document into booked days."""

    booked_days: tuple[date, ...]
    event_count: int

    @property
    def day_count(self) -> int:
        return len(self.booked_days)

    def iso_days(self) -> list[str]:
        """Booked days in their wire form (YYYY-MM-DD)."""
        return [day.isoformat() for day in self.booked_days]


def to_calendar_day(value: DateOrDateTime) -> date:
    """Truncate a date or datetime to its calendar day.

    Datetimes keep the wall-clock date of their own representation: a value of
    ``2025-01-10T23:30:00-05:00`` maps to 2025-01-10 and is never shifted into
    UTC or the server's local zone.
    """
    if isinstance(value, datetime):
        return value.date()
    return value
