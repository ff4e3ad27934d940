"""UTC clock helpers for rentalcal_lite."""

from __future__ import annotations

import datetime
import logging
import os

logger = logging.getLogger(__name__)


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via RENTALCAL_TEST_TIME environment variable.
    Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00+02:00")
    """
    test_time = os.environ.get("RENTALCAL_TEST_TIME")
    if test_time:
        try:
            dt = datetime.datetime.fromisoformat(test_time.replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=datetime.timezone.utc)
            return dt.astimezone(datetime.timezone.utc)
        except ValueError:
            logger.warning("Invalid RENTALCAL_TEST_TIME=%r; using real clock", test_time)

    return datetime.datetime.now(datetime.timezone.utc)


def serialize_iso(dt: datetime.datetime | None) -> str | None:
    """Serialize an aware datetime to ISO-8601 in UTC with a trailing Z."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
