"""JSON API routes for rentalcal_lite."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from rentalcal_lite.core.timezone_utils import serialize_iso
from rentalcal_lite.domain.availability_cache import AvailabilityCache

logger = logging.getLogger(__name__)


def register_api_routes(app: web.Application, cache: AvailabilityCache, service_name: str) -> None:
    """Register the availability API routes.

    Args:
        app: aiohttp web application
        cache: Availability cache answering every booked-days request
        service_name: Name reported by the status endpoint
    """

    async def sync_calendar(_request: web.Request) -> web.Response:
        """Return booked dates, refreshing from the feed when the cache is stale."""
        result = await cache.get_booked_days()
        status = 200 if result.success else 500
        return web.json_response(result.to_dict(), status=status)

    async def get_calendar(_request: web.Request) -> web.Response:
        """Reduced variant of sync_calendar for simple GET clients."""
        result = await cache.get_booked_days()
        if not result.success:
            payload: dict[str, Any] = {
                "success": False,
                "error": result.details or result.error,
                "bookedDates": [day.isoformat() for day in cache.snapshot.booked_days],
            }
            return web.json_response(payload, status=500)

        return web.json_response(
            {"success": True, "bookedDates": result.booked_dates, "cached": result.cached}
        )

    async def get_status(_request: web.Request) -> web.Response:
        """Report cache health without touching the upstream feed."""
        status = cache.get_status()
        return web.json_response(
            {
                "status": "online" if status.online else "offline",
                "service": service_name,
                "lastSync": serialize_iso(status.last_sync) or "Never",
                "cachedDates": status.cached_day_count,
                "cacheValid": status.is_fresh,
            }
        )

    app.router.add_post("/api/sync-calendar", sync_calendar)
    app.router.add_get("/api/calendar", get_calendar)
    app.router.add_get("/api/status", get_status)

    logger.debug("API routes registered")
