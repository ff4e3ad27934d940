"""JSON body for requests that match no route."""

from collections.abc import Callable
from typing import Any

from aiohttp import web

NOT_FOUND_MESSAGE = "Endpoint non trovato"


@web.middleware
async def not_found_middleware(
    request: web.Request, handler: Callable[[web.Request], Any]
) -> web.StreamResponse:
    """Turn aiohttp's plain-text 404/405 into the API's JSON 404 envelope."""
    try:
        return await handler(request)
    except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
        return web.json_response({"error": NOT_FOUND_MESSAGE, "path": request.path}, status=404)
