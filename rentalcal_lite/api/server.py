"""rentalcal_lite.api.server: asyncio HTTP server for rental availability.

This module wires the availability cache into an aiohttp application:
- builds the fetcher and cache from RentalSettings
- exposes the JSON API, the HTML status page and optional static files
- runs until SIGINT/SIGTERM, then releases the HTTP runner and shared clients
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from pathlib import Path
from typing import Optional

import httpx
from aiohttp import web

from rentalcal_lite.api.middleware import (
    correlation_id_middleware,
    cors_middleware,
    not_found_middleware,
)
from rentalcal_lite.api.routes import register_api_routes, register_static_routes
from rentalcal_lite.calendar.lite_fetcher import LiteICSFetcher
from rentalcal_lite.core.config_manager import RentalSettings
from rentalcal_lite.core.http_client import close_all_clients
from rentalcal_lite.core.lite_logging import configure_lite_logging
from rentalcal_lite.domain.availability_cache import AvailabilityCache

logger = logging.getLogger(__name__)

CACHE_APP_KEY = web.AppKey("availability_cache", AvailabilityCache)


def build_availability_cache(
    settings: RentalSettings, client: Optional[httpx.AsyncClient] = None
) -> AvailabilityCache:
    """Create the fetcher and the cache it feeds from settings.

    Args:
        settings: Runtime settings
        client: Optional HTTP client; the shared pooled client is used otherwise
    """
    fetcher = LiteICSFetcher(settings, client=client)
    return AvailabilityCache(fetcher, ttl_seconds=settings.cache_ttl_seconds)


def _resolve_static_dir(settings: RentalSettings) -> Path:
    static_dir = Path(settings.static_dir)
    if not static_dir.is_absolute():
        static_dir = Path.cwd() / static_dir
    return static_dir


def make_app(settings: RentalSettings, cache: Optional[AvailabilityCache] = None) -> web.Application:
    """Create the aiohttp application with all routes wired to the cache.

    Args:
        settings: Runtime settings
        cache: Availability cache to serve; built from settings when omitted
    """
    if cache is None:
        cache = build_availability_cache(settings)

    app = web.Application(
        middlewares=[correlation_id_middleware, cors_middleware, not_found_middleware]
    )
    app[CACHE_APP_KEY] = cache

    register_static_routes(app, cache, settings.service_name, _resolve_static_dir(settings))
    register_api_routes(app, cache, settings.service_name)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


def _log_startup_banner(settings: RentalSettings, host: str, port: int) -> None:
    display_host = "localhost" if host in ("0.0.0.0", "::") else host  # nosec B104
    ttl_minutes = settings.cache_ttl_seconds / 60

    logger.info("%s started on http://%s:%d", settings.service_name, display_host, port)
    logger.info("API available at http://%s:%d/api", display_host, port)
    logger.info("Endpoints: POST /api/sync-calendar, GET /api/calendar, GET /api/status")
    logger.info("Cache duration: %g minutes", ttl_minutes)
    if settings.ics_url:
        logger.info("Calendar feed URL configured")
    else:
        logger.warning(
            "No calendar feed URL configured (set RENTALCAL_ICS_URL); every sync will fail"
        )


async def _serve(settings: RentalSettings) -> None:
    """Run the server until signalled to stop."""
    stop_event = asyncio.Event()

    app = make_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()

    host = settings.server_bind
    port = settings.server_port
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise

    _log_startup_banner(settings, host, port)
    logger.debug("Server pid %d", os.getpid())

    loop = asyncio.get_running_loop()

    def _on_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()

    try:
        await close_all_clients()
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(settings: RentalSettings) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks the calling thread until a SIGINT/SIGTERM is received.

    Args:
        settings: Runtime settings (bind address, port, feed URL, cache TTL, fetcher options)
    """
    configure_lite_logging(debug_mode=settings.debug_logging)
    logger.info("Logging configuration applied: debug_mode=%s", settings.debug_logging)

    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
