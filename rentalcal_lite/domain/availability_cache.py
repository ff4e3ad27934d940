"""Availability cache: decides when to fetch the calendar feed and what to serve.

The cache owns a single SyncState snapshot (booked days plus the time of the
last successful sync). A request is answered from the snapshot while it is
younger than the TTL; otherwise the feed is fetched, expanded and the snapshot
replaced. When a refresh fails the previous booked days are served instead, as
long as there are any. Only a failure with nothing to fall back on is reported
to the caller as an error.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from rentalcal_lite.calendar.lite_day_expander import expand_to_booked_days
from rentalcal_lite.calendar.lite_exceptions import CalendarSyncError
from rentalcal_lite.calendar.lite_models import ExpansionResult
from rentalcal_lite.core.timezone_utils import now_utc, serialize_iso

logger = logging.getLogger(__name__)

SYNC_FAILED_MESSAGE = "Errore nella sincronizzazione del calendario"


class CalendarDocumentFetcher(Protocol):
    """Anything able to return the raw calendar document."""

    async def fetch_calendar_document(self, url: Optional[str] = None) -> str: ...


class CacheState(str, Enum):
    """Freshness of the cached booked days."""

    NEVER_SYNCED = "never_synced"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(frozen=True)
class SyncState:
    """Immutable snapshot of the last successful synchronization.

    Replaced as a whole on every successful sync so the booked days and their
    timestamp always belong to the same sync.
    """

    booked_days: tuple[datetime.date, ...] = ()
    last_sync: Optional[datetime.datetime] = None
    event_count: int = 0

    @property
    def has_data(self) -> bool:
        return bool(self.booked_days)


@dataclass
class SyncResult:
    """Answer to a booked-days request."""

    success: bool
    booked_days: tuple[datetime.date, ...] = ()
    cached: bool = False
    total_events: Optional[int] = None
    total_days: Optional[int] = None
    sync_time: Optional[datetime.datetime] = None
    last_sync: Optional[datetime.datetime] = None
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def booked_dates(self) -> list[str]:
        """Booked days as YYYY-MM-DD strings."""
        return [day.isoformat() for day in self.booked_days]

    def to_dict(self) -> dict[str, Any]:
        """Full JSON envelope, omitting fields that do not apply."""
        payload: dict[str, Any] = {
            "success": self.success,
            "bookedDates": self.booked_dates,
        }
        if self.success:
            payload["cached"] = self.cached
        if self.total_events is not None:
            payload["totalEvents"] = self.total_events
        if self.total_days is not None:
            payload["totalDays"] = self.total_days
        if self.sync_time is not None:
            payload["syncTime"] = serialize_iso(self.sync_time)
        elif self.success:
            payload["lastSync"] = serialize_iso(self.last_sync)
        if self.error is not None:
            payload["error"] = self.error
        if self.details is not None:
            payload["details"] = self.details
        return payload


@dataclass
class CacheStatus:
    """Read-only view of the cache for status reporting."""

    online: bool
    last_sync: Optional[datetime.datetime]
    cached_day_count: int
    is_fresh: bool
    state: CacheState = field(default=CacheState.NEVER_SYNCED)


class AvailabilityCache:
    """TTL cache of booked days with stale fallback and single-flight refresh.

    Args:
        fetcher: Object providing ``fetch_calendar_document()``
        ttl_seconds: Maximum age of the cached booked days
        time_provider: Callable returning the current aware UTC datetime
        expander: Callable turning a calendar document into an ExpansionResult
    """

    def __init__(
        self,
        fetcher: CalendarDocumentFetcher,
        ttl_seconds: float = 300,
        time_provider: Callable[[], datetime.datetime] = now_utc,
        expander: Callable[[str], ExpansionResult] = expand_to_booked_days,
    ) -> None:
        self._fetcher = fetcher
        self._ttl = datetime.timedelta(seconds=ttl_seconds)
        self._now = time_provider
        self._expand = expander
        self._state = SyncState()
        self._sync_lock = asyncio.Lock()

    @property
    def ttl(self) -> datetime.timedelta:
        return self._ttl

    @property
    def snapshot(self) -> SyncState:
        """Current SyncState; safe to read at any time."""
        return self._state

    def state(self) -> CacheState:
        """Classify the current snapshot against the TTL."""
        last_sync = self._state.last_sync
        if last_sync is None:
            return CacheState.NEVER_SYNCED
        if self._now() - last_sync < self._ttl:
            return CacheState.FRESH
        return CacheState.STALE

    def is_fresh(self) -> bool:
        return self.state() is CacheState.FRESH

    def get_status(self) -> CacheStatus:
        """Report cache size, last sync and freshness. Never fetches."""
        snapshot = self._state
        state = self.state()
        return CacheStatus(
            online=True,
            last_sync=snapshot.last_sync,
            cached_day_count=len(snapshot.booked_days),
            is_fresh=state is CacheState.FRESH,
            state=state,
        )

    def _cached_result(self, snapshot: SyncState) -> SyncResult:
        return SyncResult(
            success=True,
            booked_days=snapshot.booked_days,
            cached=True,
            last_sync=snapshot.last_sync,
        )

    def _apply_sync(self, new_state: SyncState) -> None:
        """Replace the cached snapshot. The only place the state changes."""
        self._state = new_state

    async def get_booked_days(self, force: bool = False) -> SyncResult:
        """Return the booked days, refreshing from upstream when the cache is not fresh.

        Args:
            force: Refresh even if the cached data is still fresh

        Returns:
            SyncResult. ``success`` is False only when the refresh failed and
            no booked days from an earlier sync are available.
        """
        if not force and self.is_fresh():
            logger.info("Using cached booked dates")
            return self._cached_result(self._state)

        async with self._sync_lock:
            # Another request may have refreshed the cache while we waited
            if not force and self.is_fresh():
                logger.debug("Cache refreshed by a concurrent request")
                return self._cached_result(self._state)

            return await self._synchronize()

    async def _synchronize(self) -> SyncResult:
        logger.info("Synchronizing booked dates with the calendar feed")
        sync_started = self._now()

        try:
            document = await self._fetcher.fetch_calendar_document()
            expansion = self._expand(document)
        except CalendarSyncError as e:
            logger.error("Calendar synchronization failed: %s", e)
            return self._fallback(str(e))
        except Exception as e:
            logger.exception("Unexpected error during calendar synchronization")
            return self._fallback(str(e))

        self._apply_sync(
            SyncState(
                booked_days=expansion.booked_days,
                last_sync=sync_started,
                event_count=expansion.event_count,
            )
        )
        logger.info(
            "Synchronization complete: %d events, %d booked dates",
            expansion.event_count,
            expansion.day_count,
        )

        return SyncResult(
            success=True,
            booked_days=expansion.booked_days,
            cached=False,
            total_events=expansion.event_count,
            total_days=expansion.day_count,
            sync_time=sync_started,
        )

    def _fallback(self, reason: str) -> SyncResult:
        """Serve the previous booked days after a failed refresh, if there are any."""
        snapshot = self._state
        if snapshot.has_data:
            logger.warning("Serving cached booked dates as fallback (%d days)", len(snapshot.booked_days))
            result = self._cached_result(snapshot)
            result.error = reason
            return result

        return SyncResult(
            success=False,
            booked_days=(),
            cached=False,
            error=SYNC_FAILED_MESSAGE,
            details=reason,
        )
