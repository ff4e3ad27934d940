"""Configuration management for rentalcal_lite server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_SERVER_PORT = 3000
DEFAULT_CACHE_TTL_SECONDS = 5 * 60


class RentalSettings(BaseModel):
    """Validated runtime settings for the availability service."""

    ics_url: Optional[str] = Field(default=None, description="Upstream iCalendar feed URL")
    server_bind: str = Field(default="0.0.0.0", description="Address to bind")  # nosec B104
    server_port: int = Field(default=DEFAULT_SERVER_PORT, ge=1, le=65535)

    cache_ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS, ge=0, description="Maximum age of cached booked days"
    )

    # HTTP fetcher
    request_timeout: int = Field(default=30, gt=0, description="Upstream read timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Extra attempts on transport errors")
    retry_backoff_factor: float = Field(default=1.5, gt=0)

    static_dir: str = Field(default="public", description="Directory served under /public/")
    service_name: str = Field(default="Casa Vacanza Booking System")

    debug_logging: bool = False
    log_level: Optional[str] = None


# Integer settings and the environment variables that feed them, in priority order
_INT_ENV_SETTINGS: dict[str, tuple[str, ...]] = {
    "server_port": ("RENTALCAL_WEB_PORT", "PORT"),
    "cache_ttl_seconds": ("RENTALCAL_CACHE_TTL_SECONDS",),
    "request_timeout": ("RENTALCAL_REQUEST_TIMEOUT",),
    "max_retries": ("RENTALCAL_MAX_RETRIES",),
}


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.warning("Failed to read .env file %s (continuing)", self.env_file_path, exc_info=True)
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - RENTALCAL_ICS_URL -> 'ics_url'
        - RENTALCAL_WEB_PORT or PORT -> 'server_port' (int)
        - RENTALCAL_WEB_HOST -> 'server_bind'
        - RENTALCAL_CACHE_TTL_SECONDS -> 'cache_ttl_seconds' (int)
        - RENTALCAL_REQUEST_TIMEOUT -> 'request_timeout' (int)
        - RENTALCAL_MAX_RETRIES -> 'max_retries' (int)
        - RENTALCAL_STATIC_DIR -> 'static_dir'
        - RENTALCAL_LOG_LEVEL -> 'log_level'
        - RENTALCAL_DEBUG -> 'debug_logging' (bool)

        Returns:
            Configuration dictionary accepted by build_settings()
        """
        cfg: dict[str, Any] = {}

        ics_url = os.environ.get("RENTALCAL_ICS_URL")
        if ics_url:
            cfg["ics_url"] = ics_url.strip()

        host = os.environ.get("RENTALCAL_WEB_HOST")
        if host:
            cfg["server_bind"] = host

        for key, env_names in _INT_ENV_SETTINGS.items():
            for env_name in env_names:
                raw = os.environ.get(env_name)
                if not raw:
                    continue
                try:
                    cfg[key] = int(raw)
                except ValueError:
                    logger.warning("Invalid %s=%r; ignoring", env_name, raw)
                    continue
                break

        static_dir = os.environ.get("RENTALCAL_STATIC_DIR")
        if static_dir:
            cfg["static_dir"] = static_dir

        log_level = os.environ.get("RENTALCAL_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        if os.environ.get("RENTALCAL_DEBUG", "").strip().lower() in ("1", "true", "yes", "on"):
            cfg["debug_logging"] = True

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def build_settings(cfg: dict[str, Any] | None = None) -> RentalSettings:
    """Validate a configuration dictionary into RentalSettings.

    Keys that fail validation are dropped with a warning so a single bad
    environment variable does not keep the server from starting.
    """
    cfg = dict(cfg or {})
    try:
        return RentalSettings(**cfg)
    except ValidationError as e:
        bad_keys = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        logger.warning("Ignoring invalid configuration values for: %s", ", ".join(sorted(bad_keys)))
        return RentalSettings(**{k: v for k, v in cfg.items() if k not in bad_keys})
