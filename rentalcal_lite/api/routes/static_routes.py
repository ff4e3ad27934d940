"""HTML status page and static file routes for rentalcal_lite."""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Optional

from aiohttp import web

from rentalcal_lite.domain.availability_cache import AvailabilityCache

logger = logging.getLogger(__name__)

STATUS_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>Booking API</title>
    <style>
        body {{ font-family: Arial; padding: 40px; background: #f5f5f5; }}
        .container {{ max-width: 800px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
        h1 {{ color: #0047AB; }}
        .endpoint {{ background: #f9f9f9; padding: 15px; margin: 10px 0; border-left: 4px solid #0047AB; }}
        code {{ background: #eee; padding: 2px 6px; border-radius: 3px; }}
        .status {{ color: #28a745; font-weight: bold; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{service}</h1>
        <p class="status">Server Online</p>

        <h2>API Endpoints</h2>
        <div class="endpoint"><strong>POST /api/sync-calendar</strong><br>Sincronizza il calendario</div>
        <div class="endpoint"><strong>GET /api/calendar</strong><br>Ottieni le date prenotate (usa cache se disponibile)</div>
        <div class="endpoint"><strong>GET /api/status</strong><br>Verifica lo stato del server</div>

        <h2>Info</h2>
        <ul>
            <li>Date in cache: <strong>{cached_days}</strong></li>
            <li>Ultimo sync: <strong>{last_sync}</strong></li>
            <li>Cache valida: <strong>{cache_valid}</strong></li>
        </ul>
        {static_note}
    </div>
</body>
</html>
"""


def render_status_page(cache: AvailabilityCache, service_name: str, static_dir: Optional[Path]) -> str:
    """Render the human-readable status page from the current cache status."""
    status = cache.get_status()
    last_sync = status.last_sync.strftime("%d/%m/%Y, %H:%M:%S UTC") if status.last_sync else "Mai"
    static_note = ""
    if static_dir is not None:
        static_note = (
            '<p style="margin-top: 30px; color: #666; font-size: 14px;">'
            "File statici serviti da <code>/public/</code></p>"
        )

    return STATUS_PAGE_TEMPLATE.format(
        service=html.escape(service_name),
        cached_days=status.cached_day_count,
        last_sync=html.escape(last_sync),
        cache_valid="Sì" if status.is_fresh else "No",
        static_note=static_note,
    )


def register_static_routes(
    app: web.Application,
    cache: AvailabilityCache,
    service_name: str,
    static_dir: Optional[Path] = None,
) -> None:
    """Register the status page and, when the directory exists, static files.

    Args:
        app: aiohttp web application
        cache: Availability cache shown on the status page
        service_name: Title of the status page
        static_dir: Directory served under /public/
    """
    if static_dir is not None and not static_dir.is_dir():
        logger.debug("Static directory %s not found; static files disabled", static_dir)
        static_dir = None

    async def status_page(_request: web.Request) -> web.Response:
        return web.Response(
            text=render_status_page(cache, service_name, static_dir), content_type="text/html"
        )

    app.router.add_get("/", status_page)
    if static_dir is not None:
        app.router.add_static("/public/", static_dir)

    logger.debug("Static routes registered (static_dir: %s)", static_dir)
