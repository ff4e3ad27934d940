"""rentalcal_lite - booked-day availability service for a single vacation rental.

The package root stays import-light: the aiohttp server and its dependencies
are only imported when run_server() starts.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream colorized output to the console.

    Honors RENTALCAL_DEBUG (truthy values: "1", "true", "yes", "on") which
    forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("RENTALCAL_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Load configuration, apply command line overrides and start the server.

    Args:
        args: Optional argparse namespace with ``port`` and ``debug`` attributes
    """
    import logging
    import os

    _init_logging(os.environ.get("RENTALCAL_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from rentalcal_lite.api.server import start_server
    from rentalcal_lite.core.config_manager import ConfigManager, build_settings

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            cfg["server_port"] = port
            logger.debug("Applied command line port override: %s", port)
        if getattr(args, "debug", False):
            cfg["debug_logging"] = True

    settings = build_settings(cfg)

    if settings.log_level:
        logger.info("Applying configured log_level=%s", settings.log_level)
        logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))

    logger.debug(
        "Resolved configuration (diagnostic): %s",
        settings.model_dump(include={"server_bind", "server_port", "cache_ttl_seconds", "max_retries"}),
    )

    start_server(settings)
