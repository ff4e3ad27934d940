"""
Unit tests for rentalcal_lite.calendar.lite_fetcher.LiteICSFetcher

Covers:
- backoff calculation behavior
- URL validation
- HTTP status, transport and format failures
- retry policy (single attempt by default)
"""

import random
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from rentalcal_lite.calendar.lite_exceptions import FetchError, FetchTimeoutError, FormatError
from rentalcal_lite.calendar.lite_fetcher import (
    JITTER_MAX_FACTOR,
    MAX_BACKOFF_SECONDS,
    LiteICSFetcher,
)
from rentalcal_lite.calendar.lite_models import LiteICSSource
from tests.fixtures.rental_ics_data import FEED_URL

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def make_settings(**overrides: Any) -> SimpleNamespace:
    values = {
        "ics_url": FEED_URL,
        "request_timeout": 5,
        "max_retries": 0,
        "retry_backoff_factor": 2.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture(autouse=True)
def seeded_random(monkeypatch: pytest.MonkeyPatch) -> None:
    """Seed random.uniform to deterministic value for jitter in tests."""
    monkeypatch.setattr(random, "uniform", lambda a, b: (a + b) / 2)


def test_calculate_backoff_when_attempts_increase_then_backoff_increases() -> None:
    fetcher = LiteICSFetcher(make_settings())
    b0 = fetcher._calculate_backoff(attempt=0, corruption_detected=False)
    b1 = fetcher._calculate_backoff(attempt=1, corruption_detected=False)
    b2 = fetcher._calculate_backoff(attempt=2, corruption_detected=False)
    assert b0 >= 1.0
    assert b1 > b0
    assert b2 > b1


def test_calculate_backoff_when_corruption_detected_then_capped() -> None:
    fetcher = LiteICSFetcher(make_settings())
    backoff = fetcher._calculate_backoff(attempt=10, corruption_detected=True)
    assert backoff <= MAX_BACKOFF_SECONDS * (1.0 + JITTER_MAX_FACTOR)


def test_validate_url_blocks_non_http_and_missing_hostname() -> None:
    fetcher = LiteICSFetcher(make_settings())
    assert fetcher._validate_url("ftp://example.com/resource") is False
    assert fetcher._validate_url("http:///no-host") is False
    assert fetcher._validate_url("https://example.com/calendar.ics") is True


def test_init_when_settings_have_url_then_source_built() -> None:
    fetcher = LiteICSFetcher(make_settings(request_timeout=12))
    assert fetcher.source == LiteICSSource(url=FEED_URL, timeout=12)


async def test_fetch_when_ok_then_returns_document(mock_client_factory, sample_ics_single: str) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=sample_ics_single)

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), client=client)
        document = await fetcher.fetch_calendar_document()

    assert document == sample_ics_single
    assert len(seen) == 1
    assert str(seen[0].url) == FEED_URL
    assert "text/calendar" in seen[0].headers["Accept"]
    assert "X-Request-ID" not in seen[0].headers


async def test_fetch_when_http_error_status_then_fetch_error_with_status(mock_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="BEGIN:VCALENDAR\nEND:VCALENDAR\n")

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), client=client)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_calendar_document()

    assert exc_info.value.status_code == 503
    assert exc_info.value.reason == "Service Unavailable"
    assert "503" in str(exc_info.value)


async def test_fetch_when_marker_missing_then_format_error(mock_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html><body>Please log in</body></html>")

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), client=client)
        with pytest.raises(FormatError):
            await fetcher.fetch_calendar_document()


async def test_fetch_when_body_empty_then_format_error(mock_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="")

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), client=client)
        with pytest.raises(FormatError):
            await fetcher.fetch_calendar_document()


async def test_fetch_when_timeout_then_fetch_timeout_error(mock_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("upstream too slow", request=request)

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), client=client)
        with pytest.raises(FetchTimeoutError):
            await fetcher.fetch_calendar_document()


async def test_fetch_when_network_error_and_no_retries_then_single_attempt(mock_client_factory) -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(max_retries=0), client=client)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_calendar_document()

    assert attempts == 1
    assert exc_info.value.status_code is None
    assert not isinstance(exc_info.value, FetchTimeoutError)


async def test_fetch_when_retries_configured_then_recovers_from_transient_error(
    mock_client_factory, sample_ics_single: str
) -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise httpx.ConnectError("Connection reset by peer", request=request)
        return httpx.Response(200, text=sample_ics_single)

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(max_retries=2), client=client)
        fetcher._calculate_backoff = lambda attempt, corruption_detected: 0.0  # type: ignore[method-assign]
        document = await fetcher.fetch_calendar_document()

    assert attempts == 3
    assert document == sample_ics_single


async def test_fetch_when_http_error_then_not_retried(mock_client_factory) -> None:
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        return httpx.Response(404)

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(max_retries=3), client=client)
        with pytest.raises(FetchError):
            await fetcher.fetch_calendar_document()

    assert attempts == 1


async def test_fetch_when_no_url_configured_then_fetch_error() -> None:
    fetcher = LiteICSFetcher(make_settings(ics_url=None))
    with pytest.raises(FetchError, match="No calendar URL configured"):
        await fetcher.fetch_calendar_document()


async def test_fetch_when_url_invalid_then_blocked_without_request(mock_client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("request should not be sent")

    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(ics_url="file:///etc/passwd"), client=client)
        with pytest.raises(FetchError, match="blocked"):
            await fetcher.fetch_calendar_document()


async def test_fetch_when_source_has_custom_headers_then_sent(mock_client_factory, sample_ics_empty: str) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=sample_ics_empty)

    source = LiteICSSource(url=FEED_URL, custom_headers={"X-Feed-Token": "abc"})
    async with mock_client_factory(handler) as client:
        fetcher = LiteICSFetcher(make_settings(), source=source, client=client)
        await fetcher.fetch_calendar_document()

    assert seen[0].headers["X-Feed-Token"] == "abc"
