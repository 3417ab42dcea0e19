"""
Exporter command line.

    strichliste-exporter [--bind ADDR] [--api URL] [--interval DUR] [USER_ID ...]

Without user ids every user is discovered and scraped on each cycle.
Flags override the corresponding environment settings.
"""

import argparse
import sys
from typing import List, Optional, Tuple

import structlog
import uvicorn

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.exporter.config import ConfigError, ScraperConfig, parse_user_ids

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    defaults = get_settings()
    parser = argparse.ArgumentParser(
        prog="strichliste-exporter",
        description="Export strichliste metrics for Prometheus.",
    )
    parser.add_argument(
        "--bind", default=defaults.BIND, help="address and port to bind (default: %(default)s)"
    )
    parser.add_argument(
        "--api", default=defaults.API_URL, help="strichliste api (default: %(default)s)"
    )
    parser.add_argument(
        "--interval",
        default=defaults.SCRAPE_INTERVAL,
        help="interval for scraping upstream, e.g. 30s, 5m, 1h (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.API_TIMEOUT,
        help="upstream request timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "user_ids",
        nargs="*",
        metavar="USER_ID",
        help="user ids to scrape (default: all users)",
    )
    return parser


def split_bind(bind: str) -> Tuple[str, int]:
    """Split ``host:port``; an empty host binds all interfaces.

    Raises:
        ConfigError: If the port is missing or not a number
    """
    host, sep, port = bind.rpartition(":")
    if not sep:
        raise ConfigError(f"bind address {bind!r} needs a port")
    try:
        port_number = int(port)
    except ValueError:
        raise ConfigError(f"invalid port in bind address {bind!r}") from None
    return host.strip("[]") or "0.0.0.0", port_number


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        user_ids = parse_user_ids(args.user_ids)
        settings = get_settings().model_copy(
            update={
                "BIND": args.bind,
                "API_URL": args.api,
                "SCRAPE_INTERVAL": args.interval,
                "API_TIMEOUT": args.timeout,
                "SCRAPE_USER_IDS": ",".join(map(str, user_ids)),
            }
        )
        # Fail on bad flags before any logging or serving starts
        ScraperConfig.from_settings(settings)
        host, port = split_bind(settings.BIND)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.ENV, settings.DEBUG)

    # Imported late so logging is configured before the app module loads
    from app.main import create_app

    try:
        app = create_app(settings)
    except ValueError as e:
        # Config errors and duplicated metric registration
        logger.error("startup_failed", error=str(e), error_type=type(e).__name__)
        return 1

    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
