"""
Central logging configuration for rentalcal_lite.

Keeps third-party libraries quiet while leaving the availability service's own
sync and fallback diagnostics visible.
"""

import logging
import os
from typing import Optional

LITE_MODULES = [
    "rentalcal_lite",
    "rentalcal_lite.api.server",
    "rentalcal_lite.calendar.lite_fetcher",
    "rentalcal_lite.calendar.lite_day_expander",
    "rentalcal_lite.domain.availability_cache",
]

SUPPRESSED_LOGGERS = [
    "aiohttp.access",
    "aiohttp.server",
    "aiohttp.web_log",
    "httpx",
    "httpcore",
    "asyncio",
]


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for request tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Import here to avoid circular dependency
        from rentalcal_lite.api.middleware.correlation_id import get_request_id

        record.request_id = get_request_id()
        return True


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for rentalcal_lite.

    Args:
        debug_mode: Whether to enable debug logging for rentalcal_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        RENTALCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        RENTALCAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("RENTALCAL_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("RENTALCAL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    # Keep the colorized handler installed by _init_logging if there is one
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = dict.fromkeys(SUPPRESSED_LOGGERS, logging.WARNING)
    logger_config["aiohttp.web"] = logging.INFO
    logger_config["icalendar"] = logging.INFO

    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info(
            "Debug logging enabled for rentalcal_lite modules. Third-party debug logs suppressed."
        )
    else:
        root_logger.info("Production logging configuration applied.")
