from collections.abc import AsyncIterator, Generator
from typing import Any, Callable

import httpx
import pytest

from rentalcal_lite.core.http_client import close_all_clients
from tests.fixtures.rental_ics_data import FakeClock, booking, make_ics

CONFIG_ENV_VARS = [
    "PORT",
    "RENTALCAL_ICS_URL",
    "RENTALCAL_WEB_HOST",
    "RENTALCAL_WEB_PORT",
    "RENTALCAL_CACHE_TTL_SECONDS",
    "RENTALCAL_REQUEST_TIMEOUT",
    "RENTALCAL_MAX_RETRIES",
    "RENTALCAL_STATIC_DIR",
    "RENTALCAL_LOG_LEVEL",
    "RENTALCAL_DEBUG",
    "RENTALCAL_TEST_TIME",
]


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Clear configuration environment variables so host settings never leak into tests.

    Each key is set before being deleted so monkeypatch also removes values
    that a test writes straight into os.environ (e.g. ConfigManager.load_env_file).
    """
    for key in CONFIG_ENV_VARS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_single() -> str:
    """One booking: check-in 2025-01-10, checkout 2025-01-13."""
    return make_ics(booking("b1", "20250110", "20250113"))


@pytest.fixture
def sample_ics_overlapping() -> str:
    """Two overlapping bookings covering 2025-02-01..2025-02-06 once merged."""
    return make_ics(
        booking("b1", "20250201", "20250205"),
        booking("b2", "20250203", "20250207", summary="Airbnb (Not available)"),
    )


@pytest.fixture
def sample_ics_empty() -> str:
    """Calendar without any event."""
    return make_ics()


@pytest.fixture
def mock_client_factory() -> Callable[..., httpx.AsyncClient]:
    """Build an httpx client whose requests are answered by a handler function."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
