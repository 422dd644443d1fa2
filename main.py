#!/usr/bin/env python3
"""
Salon booking API server.

Main entry point for the application.
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError as SettingsValidationError

from salon_booking.core.logger import setup_structured_logging
from salon_booking.core.settings import get_settings


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Salon booking API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL)",
    )
    parser.add_argument("--logs-dir", default="logs", help="Directory for log files")
    args = parser.parse_args()

    try:
        settings = get_settings()
    except SettingsValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    level = args.log_level or settings.log_level
    setup_structured_logging(
        level,
        json_format=settings.log_json,
        logs_dir=Path(args.logs_dir),
        diagnose=settings.is_development(),
    )
    logger = logging.getLogger(__name__)
    logger.info(f"Starting salon booking API ({settings.env}) on {args.host}:{args.port}")

    from web.app import create_app

    # log_config=None keeps uvicorn on the intercepted stdlib handlers
    uvicorn.run(
        create_app(), host=args.host, port=args.port, log_level=level.lower(), log_config=None
    )


if __name__ == "__main__":
    main()
