"""Command-line entry for rentalcal_lite."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for rentalcal_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="rentalcal_lite",
        description="RentalCal Lite - booked dates API for a vacation rental",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rentalcal_lite                    # Start server on default port (3000)
  python -m rentalcal_lite --port 8080        # Start server on port 8080
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3000, or from PORT env var)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for rentalcal_lite modules",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the rentalcal_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
