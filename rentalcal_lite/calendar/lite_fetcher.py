"""HTTP client for downloading the rental's ICS calendar feed - RentalCal Lite version."""

# Standard library imports
import asyncio
import logging
import random
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from rentalcal_lite.core.http_client import (
    DEFAULT_HEADERS,
    build_timeout,
    get_shared_client,
    record_client_error,
    record_client_success,
)

from .lite_exceptions import FetchError, FetchTimeoutError, FormatError
from .lite_models import LiteICSSource

logger = logging.getLogger(__name__)

# First structural token of every iCalendar document
ICS_MARKER = "BEGIN:VCALENDAR"

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3


class LiteICSFetcher:
    """Async HTTP client that retrieves the calendar feed and checks it is an iCalendar document.

    The fetcher is stateless apart from its HTTP client: it never touches the
    availability cache. Retries are a fetcher setting (``max_retries``,
    default 0 meaning one attempt per call) and only apply to transport
    failures; an HTTP error status is reported immediately.
    """

    def __init__(
        self,
        settings: Any,
        source: Optional[LiteICSSource] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (request_timeout, max_retries, retry_backoff_factor)
            source: Preconfigured calendar source; defaults to settings.ics_url
            client: Optional HTTP client; the shared pooled client is used otherwise
        """
        self.settings = settings
        self.request_timeout = int(getattr(settings, "request_timeout", 30))
        self.max_retries = int(getattr(settings, "max_retries", 0))
        self.retry_backoff_factor = float(getattr(settings, "retry_backoff_factor", 1.5))

        if source is None:
            ics_url = getattr(settings, "ics_url", None)
            source = LiteICSSource(url=ics_url, timeout=self.request_timeout) if ics_url else None
        self.source = source

        self.client = client
        self._client_id = "lite_fetcher"
        self._use_shared_client = client is None

        logger.debug("Lite ICS fetcher initialized (shared_client: %s)", self._use_shared_client)

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is not None and not self.client.is_closed:
            return self.client
        return await get_shared_client(self._client_id, timeout=build_timeout(self.request_timeout))

    def _validate_url(self, url: str) -> bool:
        """Check the URL is an absolute http(s) URL with a hostname.

        Args:
            url: URL string to validate

        Returns:
            True if the URL may be fetched
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            logger.debug("URL validation error for %s: %s", url, e)
            return False

        if parsed.scheme not in ("http", "https"):
            logger.debug("Blocked non-HTTP(S) URL: %s", url)
            return False

        if not parsed.hostname:
            logger.debug("Blocked URL with missing hostname: %s", url)
            return False

        return True

    async def fetch_calendar_document(self, url: Optional[str] = None) -> str:
        """Download the calendar feed and return its text.

        Args:
            url: Feed URL; defaults to the preconfigured source. Never pass a
                value taken from an incoming request.

        Returns:
            The raw iCalendar document

        Raises:
            FetchError: No URL configured, URL rejected, transport failure or
                non-success HTTP status (status_code/reason carried on the error)
            FetchTimeoutError: The upstream did not answer in time
            FormatError: The body is not an iCalendar document
        """
        if url is None:
            if self.source is None:
                raise FetchError("No calendar URL configured")
            url = self.source.url

        if not self._validate_url(url):
            logger.error("Refusing to fetch invalid calendar URL: %s", url)
            raise FetchError("Calendar URL blocked by validation")

        headers = dict(self.source.custom_headers) if self.source is not None else {}

        logger.debug("Fetching ICS from %s", url)
        response = await self._make_request_with_retry(url, headers)

        if response.is_error:
            logger.error(
                "HTTP error fetching ICS from %s: %s %s",
                url,
                response.status_code,
                response.reason_phrase,
            )
            raise FetchError(
                f"HTTP error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        content = response.text
        if ICS_MARKER not in content:
            logger.error("Downloaded content is not a valid iCalendar (%d bytes)", len(content))
            raise FormatError("Downloaded file is not a valid iCalendar")

        logger.debug("Successfully fetched ICS content (%d bytes)", len(content))
        return content

    def _calculate_backoff(self, attempt: int, corruption_detected: bool) -> float:
        """Calculate exponential backoff time with jitter.

        Args:
            attempt: Current retry attempt number (0-indexed)
            corruption_detected: Whether the connection broke mid-transfer

        Returns:
            Backoff time in seconds including jitter
        """
        base_backoff = self.retry_backoff_factor**attempt

        if corruption_detected:
            base_backoff = min(base_backoff * 2, MAX_BACKOFF_SECONDS)

        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    async def _make_request_with_retry(self, url: str, headers: dict[str, str]) -> httpx.Response:
        """GET the URL, retrying transport failures up to max_retries times.

        Returns:
            The httpx response, whatever its status code
        """
        client = await self._get_client()
        combined_headers = {**DEFAULT_HEADERS, **headers}

        # Propagate the request correlation id upstream when serving an API call
        from rentalcal_lite.api.middleware.correlation_id import get_request_id

        request_id = get_request_id()
        if request_id != "no-request-id":
            combined_headers.setdefault("X-Request-ID", request_id)

        corruption_detected = False
        attempt = 0

        while True:
            try:
                response = await client.get(
                    url, headers=combined_headers, timeout=build_timeout(self.request_timeout)
                )
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if self._use_shared_client:
                    await record_client_error(self._client_id)

                if any(marker in str(e) for marker in ("Connection broken", "Broken pipe", "Connection reset")):
                    corruption_detected = True

                if attempt >= self.max_retries:
                    logger.warning(
                        "Fetching %s failed after %d attempt(s): %s", url, attempt + 1, e
                    )
                    if isinstance(e, httpx.TimeoutException):
                        raise FetchTimeoutError(
                            f"Request timeout after {self.request_timeout}s", reason=str(e)
                        ) from e
                    raise FetchError(f"Network error: {e}", reason=str(e)) from e

                backoff_time = self._calculate_backoff(attempt, corruption_detected)
                logger.warning(
                    "Request failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1,
                    self.max_retries + 1,
                    backoff_time,
                    e,
                )
                await asyncio.sleep(backoff_time)
                attempt += 1
                continue
            except httpx.HTTPError as e:
                if self._use_shared_client:
                    await record_client_error(self._client_id)
                raise FetchError(f"Unexpected transport error: {e}", reason=str(e)) from e

            if self._use_shared_client:
                await record_client_success(self._client_id)

            logger.debug(
                "Fetched %s (attempt %d) - HTTP %d, %d bytes",
                url,
                attempt + 1,
                response.status_code,
                len(response.content),
            )
            return response
