"""Shared HTTP client manager for upstream calendar fetches.

Keeps one pooled httpx.AsyncClient per client id so repeated synchronizations
reuse connections instead of paying a TLS handshake on every cache refresh.
A client that keeps failing is recreated on next use.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from rentalcal_lite import __version__

logger = logging.getLogger(__name__)

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_health: dict[str, dict[str, float]] = {}
_client_lock = asyncio.Lock()

_DEFAULT_LIMITS = httpx.Limits(
    max_connections=4,
    max_keepalive_connections=2,
)

_DEFAULT_TIMEOUT = httpx.Timeout(
    connect=10.0,
    read=30.0,
    write=10.0,
    pool=30.0,
)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": f"rentalcal-lite/{__version__}",
    "Accept": "text/calendar, text/plain, application/octet-stream, */*",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
}

# Recreate client after 3 consecutive errors
HEALTH_ERROR_THRESHOLD = 3


def build_timeout(request_timeout: float) -> httpx.Timeout:
    """Build an httpx timeout whose read budget follows the configured request timeout."""
    return httpx.Timeout(connect=10.0, read=float(request_timeout), write=10.0, pool=30.0)


async def get_shared_client(
    client_id: str = "default",
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        await _recreate_client_if_unhealthy(client_id)

        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            try:
                _shared_clients[client_id] = httpx.AsyncClient(
                    limits=_DEFAULT_LIMITS,
                    timeout=timeout or _DEFAULT_TIMEOUT,
                    follow_redirects=True,
                    verify=True,
                    headers=DEFAULT_HEADERS,
                )
                _client_health[client_id] = {
                    "error_count": 0,
                    "created_time": time.time(),
                }
                logger.info("Created shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown to release pooled connections.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        _client_health.clear()
        logger.debug("All shared HTTP clients closed")


async def record_client_error(client_id: str = "default") -> None:
    """Record a transport error for health tracking."""
    async with _client_lock:
        health = _client_health.setdefault(client_id, {"error_count": 0, "created_time": time.time()})
        health["error_count"] += 1


async def record_client_success(client_id: str = "default") -> None:
    """Reset the error counter after a successful request."""
    async with _client_lock:
        if client_id in _client_health:
            _client_health[client_id]["error_count"] = 0


async def _recreate_client_if_unhealthy(client_id: str) -> None:
    """Drop a client that has failed too many times in a row. Caller holds _client_lock."""
    health = _client_health.get(client_id)
    if health is None or health["error_count"] < HEALTH_ERROR_THRESHOLD:
        return

    logger.warning(
        "Recreating shared HTTP client '%s' after %d consecutive errors",
        client_id,
        int(health["error_count"]),
    )
    client = _shared_clients.pop(client_id, None)
    _client_health.pop(client_id, None)
    if client is not None and not client.is_closed:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning("Error closing unhealthy HTTP client '%s': %s", client_id, e)
